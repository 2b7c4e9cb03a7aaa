# archive_viewer/database/__init__.py

from .manager import ArchiveManager, fetch_all, fetch_count, fetch_one

__all__ = ["ArchiveManager", "fetch_all", "fetch_count", "fetch_one"]
