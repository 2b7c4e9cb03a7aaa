# archive_viewer/routes/posts.py

from typing import List

from fastapi import APIRouter, HTTPException, Query
from archive_viewer.core.state import app_state
from archive_viewer.models import MAX_LIMIT, MAX_PAGE, Pagination, PostOrder
from archive_viewer.services import SearchFilter, enrich, get_post, search_posts
from .utils import http_error

router = APIRouter()

@router.get("")
async def list_posts(
    search: str = "",
    tags: List[int] = Query(default=[]),
    authors: List[int] = Query(default=[]),
    collections: List[int] = Query(default=[]),
    platforms: List[int] = Query(default=[]),
    order_by: PostOrder = PostOrder.updated,
    limit: int = Query(20, ge=1, le=MAX_LIMIT),
    page: int = Query(0, ge=0, le=MAX_PAGE),
):
    """Search posts; every given id list must be fully matched"""
    search_filter = SearchFilter(
        search=search,
        tags=tags,
        authors=authors,
        collections=collections,
        platforms=platforms,
        order_by=order_by,
    )
    try:
        async with app_state.archive.transaction() as db:
            result = await search_posts(
                db,
                app_state.caches,
                Pagination(limit=limit, page=page),
                search_filter,
                app_state.full_text_search,
            )
            return (await enrich(db, result)).to_dict()
    except Exception as e:
        raise http_error("searching posts", e) from e

@router.get("/{post_id}")
async def get_full_post(post_id: int):
    """Get a post with its tags, authors, collections and files"""
    try:
        async with app_state.archive.transaction() as db:
            post = await get_post(db, post_id)
            if post is None:
                raise HTTPException(status_code=404, detail=f"Post {post_id} not found")
            return (await enrich(db, post)).to_dict()
    except Exception as e:
        raise http_error(f"loading post {post_id}", e) from e
