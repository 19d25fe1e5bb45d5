from .review import (
    ANONYMOUS,
    FeedMode,
    ImportSummary,
    PluginCreate,
    PluginInfo,
    PluginRecord,
    RefreshResponse,
    Review,
)

__all__ = [
    "ANONYMOUS",
    "FeedMode",
    "ImportSummary",
    "PluginCreate",
    "PluginInfo",
    "PluginRecord",
    "RefreshResponse",
    "Review",
]
