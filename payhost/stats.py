"""Counting of recent anonymous visitors and forwarding of page views."""

from __future__ import annotations

import base64
import hashlib
import json
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from werkzeug.wrappers import Response

from payhost import config, log

# Seconds after which a visitor is no longer counted.
PURGE_INTERVAL = 300.0

# Seconds between purges.
PURGE_EVERY = 60.0

_TIMEOUT = 30

_identifiers: dict[str, float] = {}
_lock = threading.Lock()
_timer_lock = threading.Lock()
_purge_timer: threading.Timer | None = None


def register_hit(request: Any) -> None:
    """Record a visit from the request's anonymised client."""
    ua = request.headers.get("User-Agent", "") or ""
    if "bot" in ua:
        return
    if request.path.endswith(".xml"):
        return

    ip = request.remote_addr or ""
    forward = request.headers.get("X-Forwarded-For", "") or ""
    if forward:
        ip = forward

    client_ip = request.headers.get("CF-Connecting-IP", "") or ""
    client_country = request.headers.get("CF-IPCountry", "") or ""
    log.info({"Client IP Address": client_ip, "Client Country": client_country})

    hasher = hashlib.sha1()
    hasher.update((client_ip if config.production() else ip).encode("utf-8"))
    hasher.update(ua.encode("utf-8"))
    cid = base64.urlsafe_b64encode(hasher.digest()).decode("ascii")

    payload = {
        "v": "1",
        "t": "pageview",
        "tid": config.get("analytics_property_id"),
        "cid": cid,
        "dp": request.path,
        "uip": client_ip,
    }
    threading.Thread(
        target=_send_to_ga, args=(ua, client_ip, cid, payload), daemon=True
    ).start()

    with _lock:
        _identifiers[cid] = time.time()


def _send_to_ga(ua: str, ip: str, cid: str, values: dict[str, str]) -> None:
    body = urllib.parse.urlencode(sorted(values.items())).encode("ascii")
    try:
        req = urllib.request.Request(
            config.get("analytics_URL"),
            data=body,
            headers={"User-Agent": ua, "Content-Type": "application/x-www-form-urlencoded"},
            method="POST",
        )
        try:
            response = urllib.request.urlopen(req, timeout=_TIMEOUT)
        except urllib.error.HTTPError as exc:
            response = exc
        with response:
            status = f"{response.status} {response.reason}"
            content = response.read()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        log.error({"GA collector POST error": str(exc)})
        return

    log.info({"\nGA collector status": status, "\nGA collector cid": cid, "\nGA collector ip": ip})

    if not config.production():
        decoded = None
        try:
            decoded = json.loads(content)
        except ValueError as exc:
            log.error({"Error parsing GA collector response": exc})
        log.info({"GA collector response": decoded})

    log.info({"Reported payload": values})


def handle_user_count(request: Any = None) -> Response:
    """Return the current visitor count as JSON."""
    body = json.dumps({"users": user_count()}, separators=(",", ":"))
    return Response(body, mimetype="application/json")


def user_count() -> int:
    """Return the number of visitors seen within the purge interval."""
    with _lock:
        return len(_identifiers)


def purge_users() -> None:
    """Forget visitors last seen longer ago than the purge interval."""
    global _purge_timer
    cutoff = time.time() - PURGE_INTERVAL
    with _lock:
        for key in [k for k, seen in _identifiers.items() if seen < cutoff]:
            del _identifiers[key]

    with _timer_lock:
        if _purge_timer is not None:
            _purge_timer.cancel()
        _purge_timer = threading.Timer(PURGE_EVERY, purge_users)
        _purge_timer.daemon = True
        _purge_timer.start()


purge_users()