# archive_viewer/services/categories.py

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

import aiosqlite

from ..core.cache import Caches, CountCache
from ..core.errors import InvalidQueryError
from ..database.decoders import (
    decode_alias,
    decode_author,
    decode_collection,
    decode_platform,
    decode_post_preview,
    decode_tag,
)
from ..database.manager import fetch_all, fetch_count, fetch_one
from ..models import Alias, CategoryOrder, ListResponse, Pagination, PostPreview

_BASE_ORDERS = {
    CategoryOrder.id: "id DESC",
    CategoryOrder.name: "name ASC, id ASC",
    CategoryOrder.random: "RANDOM()",
}


@dataclass(frozen=True)
class CategoryKind:
    """
    Everything the generic category queries need to know about one kind.

    posts_join/posts_filter select the posts of one category: a join on
    the association table for many-to-many kinds, or just a column of
    posts (posts_join empty) for platforms.
    """
    name: str
    table: str
    decode: Callable[[Any], Any]
    default_order: CategoryOrder
    posts_join: str
    posts_filter: str
    orders: Dict[CategoryOrder, str] = field(default_factory=lambda: dict(_BASE_ORDERS))

    def order_clause(self, order_by: Optional[Union[CategoryOrder, str]] = None) -> str:
        key = order_by or self.default_order
        try:
            return self.orders[CategoryOrder(key)]
        except (KeyError, ValueError):
            raise InvalidQueryError(f"{self.name} cannot be ordered by {getattr(key, 'value', key)!r}")

    def post_cache(self, caches: Caches) -> CountCache:
        return getattr(caches, self.name)


AUTHORS = CategoryKind(
    name="authors",
    table="authors",
    decode=decode_author,
    default_order=CategoryOrder.updated,
    posts_join="JOIN author_posts ON author_posts.post = posts.id",
    posts_filter="author_posts.author",
    orders={**_BASE_ORDERS, CategoryOrder.updated: "updated DESC, id DESC"},
)

TAGS = CategoryKind(
    name="tags",
    table="tags",
    decode=decode_tag,
    default_order=CategoryOrder.name,
    posts_join="JOIN post_tags ON post_tags.post = posts.id",
    posts_filter="post_tags.tag",
)

PLATFORMS = CategoryKind(
    name="platforms",
    table="platforms",
    decode=decode_platform,
    default_order=CategoryOrder.name,
    posts_join="",
    posts_filter="posts.platform",
)

COLLECTIONS = CategoryKind(
    name="collections",
    table="collections",
    decode=decode_collection,
    default_order=CategoryOrder.name,
    posts_join="JOIN collection_posts ON collection_posts.post = posts.id",
    posts_filter="collection_posts.collection",
)

CATEGORIES: Dict[str, CategoryKind] = {
    kind.name: kind for kind in (AUTHORS, TAGS, PLATFORMS, COLLECTIONS)
}


def _search_clause(search: str):
    # An empty search must not produce a WHERE clause at all.
    if not search:
        return "", []
    return "WHERE name LIKE '%' || ? || '%'", [search]


async def list_categories(db: aiosqlite.Connection, kind: CategoryKind,
                          pagination: Pagination, search: str = "",
                          order_by: Optional[CategoryOrder] = None) -> List[Any]:
    """Returns one page of a category table, optionally filtered by name."""
    where, params = _search_clause(search)
    rows = await fetch_all(
        db,
        f"SELECT * FROM {kind.table} {where} "
        f"ORDER BY {kind.order_clause(order_by)} LIMIT ? OFFSET ?",
        [*params, pagination.limit, pagination.offset],
    )
    return [kind.decode(row) for row in rows]


async def count_categories(db: aiosqlite.Connection, caches: Caches,
                           kind: CategoryKind, search: str = "") -> int:
    """
    Counts a category table. Unfiltered totals are cached per table;
    searched totals are always counted fresh.
    """
    if search:
        where, params = _search_clause(search)
        return await fetch_count(db, f"SELECT COUNT(*) FROM {kind.table} {where}", params)

    return await caches.tables.get_or_load(
        kind.table,
        lambda: fetch_count(db, f"SELECT COUNT(*) FROM {kind.table}"),
    )


async def get_category(db: aiosqlite.Connection, kind: CategoryKind, category_id: int) -> Optional[Any]:
    """Looks a category up by id; None when it does not exist."""
    row = await fetch_one(db, f"SELECT * FROM {kind.table} WHERE id = ?", (category_id,))
    return kind.decode(row) if row is not None else None


async def list_author_aliases(db: aiosqlite.Connection, author_id: int) -> List[Alias]:
    """Every alias of an author; an unknown author simply has none."""
    rows = await fetch_all(
        db,
        "SELECT * FROM author_aliases WHERE target = ? ORDER BY platform, source",
        (author_id,),
    )
    return [decode_alias(row) for row in rows]


async def list_category_posts(db: aiosqlite.Connection, kind: CategoryKind,
                              category_id: int, pagination: Pagination) -> List[PostPreview]:
    rows = await fetch_all(
        db,
        f"""
        SELECT posts.id AS id, posts.title AS title,
               posts.updated AS updated, posts.thumb AS thumb
        FROM posts {kind.posts_join}
        WHERE {kind.posts_filter} = ?
        ORDER BY posts.updated DESC, posts.id DESC
        LIMIT ? OFFSET ?
        """,
        (category_id, pagination.limit, pagination.offset),
    )
    return [decode_post_preview(row) for row in rows]


async def count_category_posts(db: aiosqlite.Connection, caches: Caches,
                               kind: CategoryKind, category_id: int) -> int:
    return await kind.post_cache(caches).get_or_load(
        (kind.name, category_id),
        lambda: fetch_count(
            db,
            f"SELECT COUNT(*) FROM posts {kind.posts_join} WHERE {kind.posts_filter} = ?",
            (category_id,),
        ),
    )


async def category_list(db: aiosqlite.Connection, caches: Caches, kind: CategoryKind,
                        pagination: Pagination, search: str = "",
                        order_by: Optional[CategoryOrder] = None) -> ListResponse:
    categories = await list_categories(db, kind, pagination, search, order_by)
    total = await count_categories(db, caches, kind, search)
    return ListResponse(list=categories, total=total)


async def category_posts(db: aiosqlite.Connection, caches: Caches, kind: CategoryKind,
                         category_id: int, pagination: Pagination) -> ListResponse[PostPreview]:
    posts = await list_category_posts(db, kind, category_id, pagination)
    total = await count_category_posts(db, caches, kind, category_id)
    return ListResponse[PostPreview](list=posts, total=total)
