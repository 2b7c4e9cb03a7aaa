# archive_viewer/core/version.py

VERSION = "0.3.0"
