# archive_viewer/services/posts.py

from typing import Optional

import aiosqlite

from ..database.decoders import decode_author, decode_collection, decode_post, decode_tag
from ..database.manager import fetch_all, fetch_one
from ..models import PostResponse


async def get_post(db: aiosqlite.Connection, post_id: int) -> Optional[PostResponse]:
    """Loads a post with its tags, authors and collections; None when missing."""
    row = await fetch_one(db, "SELECT * FROM posts WHERE id = ?", (post_id,))
    if row is None:
        return None
    post = decode_post(row)

    tag_rows = await fetch_all(db, """
        SELECT tags.* FROM tags
        JOIN post_tags ON post_tags.tag = tags.id
        WHERE post_tags.post = ?
        ORDER BY tags.name, tags.id
    """, (post_id,))

    author_rows = await fetch_all(db, """
        SELECT authors.* FROM authors
        JOIN author_posts ON author_posts.author = authors.id
        WHERE author_posts.post = ?
        ORDER BY authors.id
    """, (post_id,))

    collection_rows = await fetch_all(db, """
        SELECT collections.* FROM collections
        JOIN collection_posts ON collection_posts.collection = collections.id
        WHERE collection_posts.post = ?
        ORDER BY collections.id
    """, (post_id,))

    return PostResponse(
        **dict(post),
        tags=[decode_tag(r) for r in tag_rows],
        authors=[decode_author(r) for r in author_rows],
        collections=[decode_collection(r) for r in collection_rows],
    )


async def find_post_by_source(db: aiosqlite.Connection, url: str) -> Optional[int]:
    """Id of the post archived from url, if any."""
    row = await fetch_one(db, "SELECT id FROM posts WHERE source = ?", (url,))
    return row[0] if row is not None else None
