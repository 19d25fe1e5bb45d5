from typing import Any

from fastapi import APIRouter, Body, HTTPException
from fastapi.responses import Response

from review_tracker.errors import ValidationError
from review_tracker.services.import_service import EXPORT_FILENAME, dumps_export, import_records
from review_tracker.services.ingest_service import get_ingest_service

router = APIRouter(tags=["transfer"])


@router.get("/export")
async def api_export():
    body = dumps_export(get_ingest_service().store)
    return Response(
        content=body.encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/import")
async def api_import(payload: Any = Body(..., description="JSON array of plugin records")):
    try:
        service = get_ingest_service()
        summary = await import_records(service.store, payload, lookup=service.lookup)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"status": "ok", "message": f"Uploaded data for {len(summary.slugs)} plugins", **summary.model_dump()}
