# archive_viewer/core/config.py

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

DATABASE_FILENAME = "post-archiver.db"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: Optional[str]) -> Optional[bool]:
    if value is None or value.strip() == "":
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass
class ApplicationConfig:
    archive_path: Path = Path("archive")
    host: str = "0.0.0.0"
    port: int = 3000
    resource_url: Optional[str] = None
    images_url: Optional[str] = None
    # None keeps whatever the archive has stored
    full_text_search: Optional[bool] = None
    log_file: str = "archive-viewer.log"

    @property
    def database_path(self) -> Path:
        return self.archive_path / DATABASE_FILENAME

    @classmethod
    def from_env(cls) -> 'ApplicationConfig':
        load_dotenv(find_dotenv(usecwd=True))
        return cls(
            archive_path=Path(os.getenv('ARCHIVER_PATH', 'archive')),
            host=os.getenv('ARCHIVER_HOST', '0.0.0.0'),
            port=int(os.getenv('ARCHIVER_PORT', '3000')),
            resource_url=os.getenv('ARCHIVER_RESOURCE_URL') or None,
            images_url=os.getenv('ARCHIVER_IMAGES_URL') or None,
            full_text_search=_parse_bool(
                'ARCHIVER_FULL_TEXT_SEARCH', os.getenv('ARCHIVER_FULL_TEXT_SEARCH')
            ),
            log_file=os.getenv('ARCHIVER_LOG_FILE', 'archive-viewer.log'),
        )

    def public(self) -> Dict[str, Any]:
        """Settings the frontend is allowed to see."""
        return {
            'resource_url': self.resource_url,
            'images_url': self.images_url,
        }
