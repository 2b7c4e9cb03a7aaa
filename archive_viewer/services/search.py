# archive_viewer/services/search.py

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import aiosqlite
from pydantic import BaseModel, ConfigDict, field_validator

from ..core.cache import Caches
from ..core.errors import InvalidQueryError
from ..database.decoders import decode_post_preview
from ..database.manager import fetch_all, fetch_count
from ..database.schema import FULL_TEXT_TABLE
from ..models import ListResponse, Pagination, PostOrder, PostPreview

# filter field -> (association table, column holding the related id)
RELATION_TABLES = {
    "authors": ("author_posts", "author"),
    "tags": ("post_tags", "tag"),
    "collections": ("collection_posts", "collection"),
}

ORDER_CLAUSES = {
    PostOrder.id: "posts.id DESC",
    PostOrder.updated: "posts.updated DESC, posts.id DESC",
    PostOrder.random: "RANDOM()",
}


class SearchFilter(BaseModel):
    """
    Criteria of a post search. Frozen and hashable: the whole filter is
    the cache key of the search total.

    Id lists are reduced to sorted, distinct tuples so [1, 2, 2] and
    [2, 1] are the same filter and match the same posts.
    """
    model_config = ConfigDict(frozen=True)

    search: str = ""
    tags: Tuple[int, ...] = ()
    authors: Tuple[int, ...] = ()
    collections: Tuple[int, ...] = ()
    platforms: Tuple[int, ...] = ()
    order_by: PostOrder = PostOrder.updated

    @field_validator("search", mode="before")
    @classmethod
    def _trim(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else ("" if value is None else value)

    @field_validator("tags", "authors", "collections", "platforms", mode="before")
    @classmethod
    def _distinct(cls, value: Any) -> Any:
        if value is None:
            return ()
        return tuple(sorted(set(value)))


@dataclass
class SearchQuery:
    """SQL fragments and bound parameters composed from a SearchFilter."""
    joins: List[str] = field(default_factory=list)
    filters: List[str] = field(default_factory=list)
    havings: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    def _clauses(self) -> str:
        parts = list(self.joins)
        if self.filters:
            parts.append("WHERE " + " AND ".join(self.filters))
        if self.havings:
            parts.append("GROUP BY posts.id HAVING " + " AND ".join(self.havings))
        return " ".join(parts)

    def select_sql(self, order_by: PostOrder = PostOrder.updated) -> str:
        return (
            "SELECT posts.id AS id, posts.title AS title, "
            "posts.updated AS updated, posts.thumb AS thumb "
            f"FROM posts {self._clauses()} "
            f"ORDER BY {ORDER_CLAUSES[PostOrder(order_by)]} LIMIT :limit OFFSET :offset"
        )

    def count_sql(self) -> str:
        # HAVING works on grouped posts, so count the groups from outside.
        return f"SELECT COUNT(*) FROM (SELECT 0 FROM posts {self._clauses()})"


def bind_search(query: SearchQuery, search: str, full_text_search: bool) -> None:
    if not search:
        return

    if full_text_search:
        query.joins.append(f"JOIN {FULL_TEXT_TABLE} ON posts.id = {FULL_TEXT_TABLE}.rowid")
        query.filters.append(f"{FULL_TEXT_TABLE} MATCH :search")
        query.params["search"] = search
    else:
        query.filters.append("posts.title LIKE '%' || :search || '%'")
        query.params["search"] = search


def bind_relations(query: SearchQuery, search_filter: SearchFilter) -> None:
    """
    Restricts posts to those related to every id of each non-empty set.

    Ids are bound once as a JSON array, so the statement text does not
    depend on how many ids were given. With more than one id the HAVING
    clause demands a match for each of them.
    """
    for name, (table, column) in RELATION_TABLES.items():
        ids = getattr(search_filter, name)
        if not ids:
            continue

        query.joins.append(
            f"JOIN {table} ON {table}.post = posts.id "
            f"AND {table}.{column} IN (SELECT value FROM json_each(:{name}))"
        )
        query.params[name] = json.dumps(list(ids))
        if len(ids) > 1:
            query.havings.append(f"COUNT(DISTINCT {table}.{column}) = :{name}_count")
            query.params[f"{name}_count"] = len(ids)

    if search_filter.platforms:
        query.filters.append("posts.platform IN (SELECT value FROM json_each(:platforms))")
        query.params["platforms"] = json.dumps(list(search_filter.platforms))


def compose_search(search_filter: SearchFilter, full_text_search: bool) -> SearchQuery:
    query = SearchQuery()
    bind_search(query, search_filter.search, full_text_search)
    bind_relations(query, search_filter)
    return query


async def search_posts(db: aiosqlite.Connection, caches: Caches, pagination: Pagination,
                       search_filter: SearchFilter,
                       full_text_search: bool = False) -> ListResponse[PostPreview]:
    """
    Lists posts matching every criterion of the filter.

    Only the total is cached, under the filter itself. A random order is
    allowed but pages over it are not stable. With full-text search the
    text is handed to FTS5 as typed, so its query syntax applies; text
    FTS5 cannot parse is an InvalidQueryError.
    """
    query = compose_search(search_filter, full_text_search)

    try:
        rows = await fetch_all(
            db,
            query.select_sql(search_filter.order_by),
            {**query.params, "limit": pagination.limit, "offset": pagination.offset},
        )
        total = await caches.search.get_or_load(
            search_filter,
            lambda: fetch_count(db, query.count_sql(), query.params),
        )
    except aiosqlite.OperationalError as e:
        if not (full_text_search and search_filter.search):
            raise
        raise InvalidQueryError(f"Invalid full-text search {search_filter.search!r}: {e}") from e

    posts = [decode_post_preview(row) for row in rows]
    return ListResponse[PostPreview](list=posts, total=total)
