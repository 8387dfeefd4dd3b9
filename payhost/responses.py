"""Internal redirects and cache headers for responses."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import MutableMapping

from werkzeug.utils import redirect as _redirect
from werkzeug.wrappers import Response

DAYS_TO_SECONDS = 86400

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def redirect(path: str) -> Response:
    """Return a temporary (302) redirect to an internal path."""
    return redirect_status(path, HTTPStatus.FOUND)


def redirect_status(path: str, status: int) -> Response:
    """Return a redirect to an internal path with the given status.

    External or relative paths are refused.
    """
    if path.startswith("/") and ":" not in path:
        return _redirect(path, code=int(status))
    raise ValueError(f"server: ignoring insecure redirect to external path {path}")


def redirect_external(path: str) -> Response:
    """Return a 302 redirect without checking the path."""
    return _redirect(path, code=int(HTTPStatus.FOUND))


def _http_date(moment: datetime) -> str:
    return (
        f"{_DAYS[moment.weekday()]}, {moment.day} {_MONTHS[moment.month - 1]} "
        f"{moment.year:04d} {moment.hour:02d}:{moment.minute:02d}:{moment.second:02d} UTC"
    )


def add_cache_headers(
    headers: MutableMapping[str, str], days: int, content_hash: str
) -> None:
    """Set Cache-Control, Expires and ETag for an age in days and a content hash."""
    headers["Cache-Control"] = f"max-age:{days * DAYS_TO_SECONDS}"
    expires = datetime.now(timezone.utc) + timedelta(days=days)
    headers["Expires"] = _http_date(expires)
    headers["ETag"] = f'"{content_hash}"'