"""Text transformations for user-written HTML: paragraphs, links and handles."""

from __future__ import annotations

import re
import urllib.error
import urllib.request

from payhost import log

_WS = "\t\n\f\r "
_TRAILING = f"([{_WS}!?.,]?)"

_URL_RX = re.compile(f"(\\A|[{_WS}]+)(https?://[^{_WS}><]*)" + _TRAILING)
_USER_RX = re.compile(f"(\\A|[{_WS}]+)@([^{_WS}!?.,<>]*)" + _TRAILING)
_PROJECT_RX = re.compile(f"(\\A|[{_WS}]+)/projects/([^{_WS}!?.,<>]*)" + _TRAILING)
_USER_HANDLE_RX = re.compile(f"(\\A|[{_WS}]+)@([^{_WS}!?.,<>]*)")
_TRAILING_PARA = re.compile(f"<p>[{_WS}]*\\Z")

_TIMEOUT = 30


def convert_newlines(s: str) -> str:
    """Turn newlines into paragraphs unless s already holds paragraph tags."""
    if "<p>" in s:
        return s
    s = "<p>" + s.replace("\n", "</p><p>")
    return _TRAILING_PARA.sub("", s)


def convert_links(s: str) -> str:
    """Turn bare URLs, @names and /projects/ references into anchors."""
    s = _URL_RX.sub(r'\g<1><a href="\g<2>">\g<2></a>\g<3>', s)
    s = _USER_RX.sub(r'\g<1><a href="/u/\g<2>">@\g<2></a>\g<3>', s)
    return _PROJECT_RX.sub(r'\g<1><a href="/projects/\g<2>">/projects/\g<2></a>\g<3>', s)


def _clean_url(u: str) -> str:
    for old in ("\n", "\r", "&nbsp;", " "):
        u = u.replace(old, "")
    return u


def get_links(s: str) -> bool:
    """Fetch the first URL in s; True if it answers 2xx or there is no URL."""
    match = _URL_RX.search(s)
    if match is None:
        return True

    target = _clean_url(match.group(0))
    opener = urllib.request.build_opener()
    try:
        with opener.open(target, timeout=_TIMEOUT) as response:
            status = response.status
    except urllib.error.HTTPError as exc:
        status = exc.code
        exc.close()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        log.error({"msg": "Error checking http status for URL " + target, "error": exc})
        return False

    log.info({"msg": "HTTP Status", "HTTP StatusCode": status})
    if 200 <= status <= 299:
        log.info({"msg": "HTTP Status is in the 2xx range"})
        return True
    log.info({"msg": "HTTP Status is not in the 2xx range"})
    return False


def get_usernames(s: str) -> list[str]:
    """Return every @name in s, each with the whitespace before it."""
    return [match.group(0) for match in _USER_HANDLE_RX.finditer(s)]