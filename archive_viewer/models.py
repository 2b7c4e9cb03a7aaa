# archive_viewer/models.py

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, Set, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator
from pydantic.alias_generators import to_camel


class RequiresRelations:
    """
    Mixin for payloads that reference rows of other tables by id.

    The enrichment step asks every payload which author, collection,
    platform, tag and file ids it needs and resolves each kind with a
    single query. Everything defaults to "nothing required".
    """

    def required_authors(self) -> List[int]:
        return []

    def required_collections(self) -> List[int]:
        return []

    def required_platforms(self) -> List[int]:
        return []

    def required_tags(self) -> List[int]:
        return []

    def required_file_metas(self) -> List[int]:
        return []

    def forget_missing_files(self, known: Set[int]) -> None:
        """Drop thumbnail references whose file row no longer exists."""


class PostOrder(str, Enum):
    id = "id"
    updated = "updated"
    random = "random"


class CategoryOrder(str, Enum):
    id = "id"
    name = "name"
    updated = "updated"
    random = "random"


# Upper bounds keep page * limit well inside a SQLite INTEGER.
MAX_LIMIT = 1000
MAX_PAGE = 2**32 - 1


class Pagination(BaseModel):
    limit: int = Field(20, ge=1, le=MAX_LIMIT)
    page: int = Field(0, ge=0, le=MAX_PAGE)

    @property
    def offset(self) -> int:
        return self.page * self.limit


class Link(BaseModel):
    name: str
    url: str


class FileMeta(BaseModel):
    id: int
    filename: str
    author: int
    post: int
    mime: str
    extra: Dict[str, Any] = {}


class Platform(RequiresRelations, BaseModel):
    id: int
    name: str


class Tag(RequiresRelations, BaseModel):
    id: int
    name: str
    platform: Optional[int] = None

    def required_platforms(self) -> List[int]:
        return [self.platform] if self.platform is not None else []


class Author(RequiresRelations, BaseModel):
    id: int
    name: str
    links: List[Link] = []
    thumb: Optional[int] = None
    updated: datetime

    def required_file_metas(self) -> List[int]:
        return [self.thumb] if self.thumb is not None else []

    def forget_missing_files(self, known: Set[int]) -> None:
        if self.thumb is not None and self.thumb not in known:
            self.thumb = None


class Collection(RequiresRelations, BaseModel):
    id: int
    name: str
    source: Optional[str] = None
    thumb: Optional[int] = None

    def required_file_metas(self) -> List[int]:
        return [self.thumb] if self.thumb is not None else []

    def forget_missing_files(self, known: Set[int]) -> None:
        if self.thumb is not None and self.thumb not in known:
            self.thumb = None


class Alias(RequiresRelations, BaseModel):
    """Another name an author is known by on one platform."""
    source: str
    platform: int
    target: int
    link: Optional[str] = None

    def required_platforms(self) -> List[int]:
        return [self.platform]


class Content(BaseModel):
    """
    One block of a post body: literal text or a reference to a file.

    Stored (and served) in the archive's tagged form, ``{"Text": "..."}``
    or ``{"File": 12}``.
    """
    text: Optional[str] = None
    file: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def _from_tagged(cls, value: Any) -> Any:
        if isinstance(value, dict) and ("Text" in value or "File" in value):
            if len(value) != 1:
                raise ValueError(f"content block has unexpected keys: {sorted(value)}")
            return {"text": value.get("Text"), "file": value.get("File")}
        return value

    @model_validator(mode="after")
    def _one_of(self) -> "Content":
        if (self.text is None) == (self.file is None):
            raise ValueError("content block must hold exactly one of text or file")
        return self

    @model_serializer
    def _to_tagged(self) -> Dict[str, Any]:
        if self.file is not None:
            return {"File": self.file}
        return {"Text": self.text}


class Comment(BaseModel):
    user: str
    text: str
    replies: List["Comment"] = []


class Post(RequiresRelations, BaseModel):
    id: int
    title: str
    content: List[Content] = []
    source: Optional[str] = None
    thumb: Optional[int] = None
    platform: Optional[int] = None
    comments: List[Comment] = []
    updated: datetime
    published: datetime

    def content_files(self) -> List[int]:
        return [block.file for block in self.content if block.file is not None]

    def required_platforms(self) -> List[int]:
        return [self.platform] if self.platform is not None else []

    def required_file_metas(self) -> List[int]:
        files = self.content_files()
        if self.thumb is not None:
            files.append(self.thumb)
        return files

    def forget_missing_files(self, known: Set[int]) -> None:
        if self.thumb is not None and self.thumb not in known:
            self.thumb = None


class PostResponse(Post):
    """A post together with the tags, authors and collections it belongs to."""
    tags: List[Tag] = []
    authors: List[Author] = []
    collections: List[Collection] = []

    def required_platforms(self) -> List[int]:
        platforms = super().required_platforms()
        platforms.extend(_flatten(tag.required_platforms() for tag in self.tags))
        return platforms

    def required_file_metas(self) -> List[int]:
        files = super().required_file_metas()
        files.extend(_flatten(author.required_file_metas() for author in self.authors))
        files.extend(_flatten(c.required_file_metas() for c in self.collections))
        return files

    def forget_missing_files(self, known: Set[int]) -> None:
        super().forget_missing_files(known)
        for item in [*self.authors, *self.collections]:
            item.forget_missing_files(known)


class PostPreview(RequiresRelations, BaseModel):
    id: int
    title: str
    thumb: Optional[int] = None
    updated: datetime

    def required_file_metas(self) -> List[int]:
        return [self.thumb] if self.thumb is not None else []

    def forget_missing_files(self, known: Set[int]) -> None:
        if self.thumb is not None and self.thumb not in known:
            self.thumb = None


T = TypeVar("T")


class ListResponse(RequiresRelations, BaseModel, Generic[T]):
    list: List[T]
    total: int

    def required_authors(self) -> List[int]:
        return _flatten(item.required_authors() for item in self.list)

    def required_collections(self) -> List[int]:
        return _flatten(item.required_collections() for item in self.list)

    def required_platforms(self) -> List[int]:
        return _flatten(item.required_platforms() for item in self.list)

    def required_tags(self) -> List[int]:
        return _flatten(item.required_tags() for item in self.list)

    def required_file_metas(self) -> List[int]:
        return _flatten(item.required_file_metas() for item in self.list)

    def forget_missing_files(self, known: Set[int]) -> None:
        for item in self.list:
            item.forget_missing_files(known)


class Summary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str
    post_archiver_version: Optional[str] = None
    posts: int
    tags: int
    authors: int
    collections: int
    platforms: int


def _flatten(groups: Iterable[List[int]]) -> List[int]:
    return [item for group in groups for item in group]
