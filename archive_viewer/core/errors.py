# archive_viewer/core/errors.py


class ArchiveError(Exception):
    """Base class for errors raised while answering from the archive."""


class DecodeError(ArchiveError):
    """A stored column could not be decoded; the archive is corrupt."""

    def __init__(self, table: str, column: str, reason: str):
        self.table = table
        self.column = column
        self.reason = reason
        super().__init__(f"Malformed {table}.{column}: {reason}")


class InvalidQueryError(ArchiveError):
    """The caller asked for something the archive cannot answer, such as an unsupported ordering."""
