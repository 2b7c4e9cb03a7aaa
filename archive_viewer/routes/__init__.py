# archive_viewer/routes/__init__.py

from fastapi import APIRouter
from archive_viewer.services import CATEGORIES
from . import categories, config, posts

router = APIRouter()

# Include all route modules
router.include_router(config.router, prefix="/api", tags=["config"])
router.include_router(posts.router, prefix="/api/posts", tags=["posts"])
for kind in CATEGORIES.values():
    kind_router = (
        categories.build_author_router() if kind.name == "authors"
        else categories.build_router(kind)
    )
    router.include_router(kind_router, prefix=f"/api/{kind.name}", tags=[kind.name])
