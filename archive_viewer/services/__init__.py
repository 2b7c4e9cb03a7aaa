# archive_viewer/services/__init__.py

from .categories import (
    CATEGORIES,
    CategoryKind,
    category_list,
    category_posts,
    get_category,
    list_author_aliases,
)
from .posts import find_post_by_source, get_post
from .relations import WithRelations, enrich
from .search import SearchFilter, compose_search, search_posts
from .summary import get_summary

__all__ = [
    "CATEGORIES",
    "CategoryKind",
    "SearchFilter",
    "WithRelations",
    "category_list",
    "category_posts",
    "compose_search",
    "enrich",
    "find_post_by_source",
    "get_category",
    "get_post",
    "get_summary",
    "list_author_aliases",
    "search_posts",
]
