# archive_viewer/routes/config.py

from fastapi import APIRouter
from fastapi.responses import RedirectResponse
from archive_viewer.core.state import app_state
from archive_viewer.services import find_post_by_source, get_summary
from .utils import http_error

router = APIRouter()

@router.get("/config.json")
async def get_public_config():
    return app_state.config.public()

@router.get("/summary")
async def get_archive_summary():
    try:
        async with app_state.archive.transaction() as db:
            summary = await get_summary(db, app_state.caches)
        return summary.model_dump(by_alias=True)
    except Exception as e:
        raise http_error("building summary", e) from e

@router.get("/redirect")
async def redirect_to_post(url: str):
    """Send the client to the archived copy of url, or to url itself"""
    try:
        async with app_state.archive.transaction() as db:
            post_id = await find_post_by_source(db, url)
    except Exception as e:
        raise http_error("resolving redirect", e) from e

    target = f"/posts/{post_id}" if post_id is not None else url
    return RedirectResponse(target, status_code=308)
