from .store import JsonFileStore, MemoryStore, PluginStore, close_store, get_store, set_store

__all__ = ["JsonFileStore", "MemoryStore", "PluginStore", "close_store", "get_store", "set_store"]
