# archive_viewer/routes/categories.py

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from archive_viewer.core.state import app_state
from archive_viewer.models import MAX_LIMIT, MAX_PAGE, CategoryOrder, ListResponse, Pagination
from archive_viewer.services import (
    CATEGORIES,
    CategoryKind,
    category_list,
    category_posts,
    enrich,
    get_category,
    list_author_aliases,
)
from .utils import http_error

def build_router(kind: CategoryKind) -> APIRouter:
    """Routes listing, fetching and paging the posts of one category kind."""
    router = APIRouter()

    @router.get("")
    async def list_categories(
        search: str = "",
        order_by: Optional[CategoryOrder] = None,
        limit: int = Query(20, ge=1, le=MAX_LIMIT),
        page: int = Query(0, ge=0, le=MAX_PAGE),
    ):
        try:
            async with app_state.archive.transaction() as db:
                result = await category_list(
                    db, app_state.caches, kind,
                    Pagination(limit=limit, page=page), search, order_by,
                )
                return (await enrich(db, result)).to_dict()
        except Exception as e:
            raise http_error(f"listing {kind.name}", e) from e

    @router.get("/{category_id}")
    async def get_single_category(category_id: int):
        try:
            async with app_state.archive.transaction() as db:
                category = await get_category(db, kind, category_id)
                if category is None:
                    raise HTTPException(
                        status_code=404,
                        detail=f"{kind.name} {category_id} not found"
                    )
                return (await enrich(db, category)).to_dict()
        except Exception as e:
            raise http_error(f"loading {kind.name} {category_id}", e) from e

    @router.get("/{category_id}/posts")
    async def list_category_posts(
        category_id: int,
        limit: int = Query(20, ge=1, le=MAX_LIMIT),
        page: int = Query(0, ge=0, le=MAX_PAGE),
    ):
        try:
            async with app_state.archive.transaction() as db:
                if await get_category(db, kind, category_id) is None:
                    raise HTTPException(
                        status_code=404,
                        detail=f"{kind.name} {category_id} not found"
                    )
                result = await category_posts(
                    db, app_state.caches, kind, category_id,
                    Pagination(limit=limit, page=page),
                )
                return (await enrich(db, result)).to_dict()
        except Exception as e:
            raise http_error(f"listing posts of {kind.name} {category_id}", e) from e

    return router


def build_author_router() -> APIRouter:
    """The generic author routes plus the aliases of one author."""
    router = build_router(CATEGORIES["authors"])

    @router.get("/{author_id}/aliases")
    async def list_aliases(author_id: int):
        try:
            async with app_state.archive.transaction() as db:
                aliases = await list_author_aliases(db, author_id)
                result = ListResponse(list=aliases, total=len(aliases))
                return (await enrich(db, result)).to_dict()
        except Exception as e:
            raise http_error(f"listing aliases of author {author_id}", e) from e

    return router
