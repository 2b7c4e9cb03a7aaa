# archive_viewer/routes/utils.py

import logging

from fastapi import HTTPException

from archive_viewer.core.errors import InvalidQueryError


def http_error(action: str, e: Exception) -> HTTPException:
    """Maps a failure while handling a request to the response to send."""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, InvalidQueryError):
        return HTTPException(status_code=400, detail=str(e))

    logging.error(f"Error {action}: {e}")
    return HTTPException(status_code=500, detail="Internal server error")
