# archive_viewer/database/decoders.py

import json
import re
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import DecodeError
from ..models import Alias, Author, Collection, FileMeta, Platform, Post, PostPreview, Tag

# Rows are read by column name (aiosqlite.Row, or any mapping in tests) so
# that SELECT * keeps working when the archiver reorders columns.
Row = Mapping[str, Any]

M = TypeVar("M", bound=BaseModel)

_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def _column(row: Row, table: str, column: str) -> Any:
    try:
        return row[column]
    except (KeyError, IndexError):
        raise DecodeError(table, column, "column missing from row")


def _json_column(row: Row, table: str, column: str, empty: Any) -> Any:
    raw = _column(row, table, column)
    if raw is None:
        return empty
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError(table, column, f"invalid JSON ({e})")


def parse_timestamp(value: Any, table: str = "?", column: str = "?") -> datetime:
    """
    Parse a stored timestamp.

    Accepts unix seconds or ISO 8601 text with a space or 'T' separator;
    naive values are taken as UTC.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str):
        raise DecodeError(table, column, f"expected a timestamp, got {value!r}")

    text = _EXCESS_FRACTION.sub(r"\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise DecodeError(table, column, f"invalid timestamp {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _build(model: Callable[..., M], table: str, **fields: Any) -> M:
    try:
        return model(**fields)
    except ValidationError as e:
        error = e.errors()[0]
        column = str(error["loc"][0]) if error.get("loc") else "?"
        raise DecodeError(table, column, error.get("msg", str(e)))


def decode_platform(row: Row) -> Platform:
    return _build(
        Platform, "platforms",
        id=_column(row, "platforms", "id"),
        name=_column(row, "platforms", "name"),
    )


def decode_tag(row: Row) -> Tag:
    return _build(
        Tag, "tags",
        id=_column(row, "tags", "id"),
        name=_column(row, "tags", "name"),
        platform=_column(row, "tags", "platform"),
    )


def decode_author(row: Row) -> Author:
    return _build(
        Author, "authors",
        id=_column(row, "authors", "id"),
        name=_column(row, "authors", "name"),
        links=_json_column(row, "authors", "links", []),
        thumb=_column(row, "authors", "thumb"),
        updated=parse_timestamp(_column(row, "authors", "updated"), "authors", "updated"),
    )


def decode_alias(row: Row) -> Alias:
    return _build(
        Alias, "author_aliases",
        source=_column(row, "author_aliases", "source"),
        platform=_column(row, "author_aliases", "platform"),
        target=_column(row, "author_aliases", "target"),
        link=_column(row, "author_aliases", "link"),
    )


def decode_collection(row: Row) -> Collection:
    return _build(
        Collection, "collections",
        id=_column(row, "collections", "id"),
        name=_column(row, "collections", "name"),
        source=_column(row, "collections", "source"),
        thumb=_column(row, "collections", "thumb"),
    )


def decode_file_meta(row: Row) -> FileMeta:
    return _build(
        FileMeta, "file_metas",
        id=_column(row, "file_metas", "id"),
        filename=_column(row, "file_metas", "filename"),
        author=_column(row, "file_metas", "author"),
        post=_column(row, "file_metas", "post"),
        mime=_column(row, "file_metas", "mime"),
        extra=_json_column(row, "file_metas", "extra", {}),
    )


def decode_post(row: Row) -> Post:
    return _build(
        Post, "posts",
        id=_column(row, "posts", "id"),
        title=_column(row, "posts", "title"),
        content=_json_column(row, "posts", "content", []),
        source=_column(row, "posts", "source"),
        thumb=_column(row, "posts", "thumb"),
        platform=_column(row, "posts", "platform"),
        comments=_json_column(row, "posts", "comments", []),
        updated=parse_timestamp(_column(row, "posts", "updated"), "posts", "updated"),
        published=parse_timestamp(_column(row, "posts", "published"), "posts", "published"),
    )


def decode_post_preview(row: Row) -> PostPreview:
    return _build(
        PostPreview, "posts",
        id=_column(row, "posts", "id"),
        title=_column(row, "posts", "title"),
        thumb=_column(row, "posts", "thumb"),
        updated=parse_timestamp(_column(row, "posts", "updated"), "posts", "updated"),
    )
