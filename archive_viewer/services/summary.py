# archive_viewer/services/summary.py

import aiosqlite

from ..core.cache import Caches
from ..core.version import VERSION
from ..database.manager import fetch_count, fetch_one
from ..models import Summary
from .categories import AUTHORS, COLLECTIONS, PLATFORMS, TAGS, count_categories


async def get_summary(db: aiosqlite.Connection, caches: Caches) -> Summary:
    """Viewer and archive versions plus the size of every table."""
    row = await fetch_one(db, "SELECT version FROM post_archiver_meta LIMIT 1")

    posts = await caches.tables.get_or_load(
        "posts", lambda: fetch_count(db, "SELECT COUNT(*) FROM posts")
    )

    return Summary(
        version=VERSION,
        post_archiver_version=row[0] if row is not None else None,
        posts=posts,
        tags=await count_categories(db, caches, TAGS),
        authors=await count_categories(db, caches, AUTHORS),
        collections=await count_categories(db, caches, COLLECTIONS),
        platforms=await count_categories(db, caches, PLATFORMS),
    )
