# archive_viewer/services/relations.py

import json
from dataclasses import dataclass, field
from itertools import chain
from typing import Any, Callable, Dict, Generic, Iterable, List, TypeVar

import aiosqlite

from ..database.decoders import (
    decode_author,
    decode_collection,
    decode_file_meta,
    decode_platform,
    decode_tag,
)
from ..database.manager import fetch_all
from ..models import Author, Collection, FileMeta, Platform, RequiresRelations, Tag

P = TypeVar("P", bound=RequiresRelations)
E = TypeVar("E")

RELATION_KEYS = ("authors", "collections", "platforms", "tags", "file_metas")


@dataclass
class WithRelations(Generic[P]):
    """A payload and the rows it references, resolved by id."""
    inner: P
    authors: List[Author] = field(default_factory=list)
    collections: List[Collection] = field(default_factory=list)
    platforms: List[Platform] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)
    file_metas: List[FileMeta] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form: the payload's fields plus every non-empty side list."""
        data = self.inner.model_dump(mode="json", by_alias=True)
        for key in RELATION_KEYS:
            items = getattr(self, key)
            if items:
                data[key] = [item.model_dump(mode="json") for item in items]
        return data


async def query_relation(db: aiosqlite.Connection, table: str,
                         decode: Callable[[Any], E], ids: Iterable[int]) -> List[E]:
    """
    Loads the rows of table whose id is in ids with a single statement.

    Ids are deduplicated first and an empty set issues no query. Ids
    without a row are left out of the result.
    """
    distinct = sorted(set(ids))
    if not distinct:
        return []

    rows = await fetch_all(
        db,
        f"SELECT * FROM {table} WHERE id IN (SELECT value FROM json_each(?)) ORDER BY id",
        (json.dumps(distinct),),
    )
    return [decode(row) for row in rows]


async def enrich(db: aiosqlite.Connection, inner: P) -> WithRelations[P]:
    """
    Resolves everything the payload references, one query per table.

    Order matters: tags are loaded before platforms because tags carry
    platform ids, and authors and collections before files because they
    carry thumbnail ids. Run it inside one transaction so all lookups see
    the same snapshot.
    """
    tags = await query_relation(db, "tags", decode_tag, inner.required_tags())
    platforms = await query_relation(
        db, "platforms", decode_platform,
        chain(inner.required_platforms(), *(tag.required_platforms() for tag in tags)),
    )

    authors = await query_relation(db, "authors", decode_author, inner.required_authors())
    collections = await query_relation(
        db, "collections", decode_collection, inner.required_collections()
    )

    file_metas = await query_relation(
        db, "file_metas", decode_file_meta,
        chain(
            inner.required_file_metas(),
            *(author.required_file_metas() for author in authors),
            *(collection.required_file_metas() for collection in collections),
        ),
    )

    known_files = {file_meta.id for file_meta in file_metas}
    for item in chain([inner], authors, collections):
        item.forget_missing_files(known_files)

    return WithRelations(
        inner=inner,
        authors=authors,
        collections=collections,
        platforms=platforms,
        tags=tags,
        file_metas=file_metas,
    )
