from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Query

from review_tracker.errors import NotFound, RefreshInProgress, ValidationError
from review_tracker.models.review import FeedMode, PluginCreate, RefreshResponse
from review_tracker.services.ingest_service import RefreshResult, get_ingest_service
from review_tracker.services.normalize import format_plugin_name

router = APIRouter(tags=["plugins"])


def _to_response(result: RefreshResult) -> RefreshResponse:
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error or "Failed to fetch reviews")
    return RefreshResponse(
        slug=result.slug,
        ok=True,
        fetched=result.fetched,
        totalReviews=result.record.totalReviews if result.record else 0,
        warnings=result.warnings,
        record=result.record,
    )


@router.get("/plugins")
async def api_list_plugins() -> List[Dict[str, Any]]:
    service = get_ingest_service()
    return [
        {
            "slug": rec.slug,
            "name": rec.name or format_plugin_name(rec.slug),
            "totalReviews": rec.totalReviews,
            "lastUpdated": rec.lastUpdated.isoformat(),
            "refreshing": service.is_running(rec.slug),
        }
        for rec in service.store.list_records()
    ]


@router.get("/plugins/{slug}")
async def api_get_plugin(slug: str):
    rec = get_ingest_service().store.load(slug)
    if rec is None:
        raise HTTPException(status_code=404, detail="Plugin not tracked")
    return rec.to_dict()


@router.post("/plugins", status_code=201, response_model=RefreshResponse, response_model_exclude_none=True)
async def api_add_plugin(payload: PluginCreate):
    try:
        result = await get_ingest_service().add_plugin(payload.slug, payload.mode)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except NotFound:
        raise HTTPException(status_code=404, detail="This plugin doesn't exist on WordPress.org")
    except RefreshInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _to_response(result)


@router.post("/plugins/{slug}/refresh", response_model=RefreshResponse, response_model_exclude_none=True)
async def api_refresh_plugin(slug: str, mode: FeedMode = Query("syndication", description="listing or syndication")):
    service = get_ingest_service()
    if service.store.load(slug) is None:
        raise HTTPException(status_code=404, detail="Plugin not tracked")
    try:
        result = await service.refresh(slug, mode)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RefreshInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _to_response(result)


@router.delete("/plugins/{slug}")
async def api_remove_plugin(slug: str):
    service = get_ingest_service()
    rec = service.store.load(slug)
    if rec is None:
        raise HTTPException(status_code=404, detail="Plugin not tracked")
    try:
        await service.remove_plugin(slug)
    except RefreshInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {"status": "ok", "message": f"Removed {rec.name or rec.slug} from the list"}
