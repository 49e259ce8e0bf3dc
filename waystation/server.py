"""HTTP API and dashboard for the trip planner, usable as a WSGI application."""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from http import HTTPStatus
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode

from .limits import Limits
from .store import Store, Trip
from .ui import dashboard_html

logger = logging.getLogger(__name__)

RESOURCE_NAME = "trips"
SERVICE_NAME = "waystation"
CONFIG_FILENAME = "config.json"
UPGRADE_URL = "https://example.com/waystation/"

_JSON_TYPE = "application/json"
_TEXT_TYPE = "text/plain; charset=utf-8"
_HTML_TYPE = "text/html; charset=utf-8"

_TRIP_FIELDS = tuple(f.name for f in fields(Trip))
_MERGED_FIELDS = ("name", "destination", "start_date", "end_date", "itinerary", "status", "notes")


@dataclass
class Response:
    """An HTTP response: status code, headers and body bytes."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class _Request:
    method: str
    path: str
    query: dict[str, str]
    body: bytes
    params: dict[str, str] = field(default_factory=dict)


_Handler = Callable[[_Request], Response]


@dataclass(frozen=True)
class _Route:
    method: str
    pattern: str
    handler: _Handler

    def match(self, path: str) -> dict[str, str] | None:
        """Return the path parameters when the path fits the pattern."""
        if self.pattern.endswith("/"):
            return {} if path.startswith(self.pattern) else None
        wanted = self.pattern[1:].split("/")
        given = path[1:].split("/")
        if len(wanted) != len(given):
            return None
        params: dict[str, str] = {}
        for want, got in zip(wanted, given):
            if want.startswith("{") and want.endswith("}"):
                if not got:
                    return None
                params[want[1:-1]] = got
            elif want != got:
                return None
        return params

    def accepts(self, method: str) -> bool:
        return method == self.method or (self.method == "GET" and method == "HEAD")


class _DecodeError(ValueError):
    pass


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value {name}")


def _loads(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


def _decode_first(body: bytes) -> Any:
    """Decode the first JSON value in the body; anything after it is ignored."""
    text = body.decode("utf-8", errors="replace").lstrip(" \t\r\n")
    if not text:
        raise _DecodeError("empty body")
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    try:
        value, _ = decoder.raw_decode(text)
    except ValueError as exc:
        raise _DecodeError(str(exc)) from exc
    return value


def _trip_from_json(body: bytes) -> Trip:
    """Decode a trip, matching keys case-insensitively; nulls leave fields untouched."""
    data = _decode_first(body)
    if isinstance(data, dict):
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            name = key if key in _TRIP_FIELDS else key.lower()
            if name not in _TRIP_FIELDS or value is None:
                continue
            normalized[name] = value
        data = normalized
    try:
        return Trip.from_dict(data)
    except ValueError as exc:
        raise _DecodeError(str(exc)) from exc


def _encode(value: Any) -> bytes:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    text = (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return (text + "\n").encode("utf-8")


def _json(status: int, value: Any) -> Response:
    return Response(status, _encode(value), {"Content-Type": _JSON_TYPE})


def _error(status: int, message: str) -> Response:
    return _json(status, {"error": message})


def _plain_error(status: int, message: str) -> Response:
    return Response(
        status,
        (message + "\n").encode("utf-8"),
        {"Content-Type": _TEXT_TYPE, "X-Content-Type-Options": "nosniff"},
    )


def _redirect(location: str, status: int, method: str) -> Response:
    headers = {"Location": location}
    body = b""
    if method in ("GET", "HEAD"):
        headers["Content-Type"] = _HTML_TYPE
        phrase = HTTPStatus(status).phrase
        body = f'<a href="{location}">{phrase}</a>.\n\n'.encode("utf-8")
    return Response(status, body, headers)


def _clean_path(path: str) -> str:
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    stack: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if stack:
                stack.pop()
            continue
        stack.append(segment)
    cleaned = "/" + "/".join(stack)
    if path.endswith("/") and cleaned != "/":
        cleaned += "/"
    return cleaned


def _first_values(query: Mapping[str, str] | str | None) -> tuple[dict[str, str], str]:
    if query is None:
        return {}, ""
    if isinstance(query, str):
        parsed = parse_qs(query, keep_blank_values=True)
        return {key: values[0] for key, values in parsed.items()}, query
    values = dict(query)
    return values, urlencode(values)


class Server:
    """Routes API, extras, config and dashboard requests to the trip store."""

    def __init__(self, db: Store, limits: Limits, data_dir: str | Path) -> None:
        self.db = db
        self.limits = limits
        self.data_dir = Path(data_dir)
        self._config: dict[str, Any] | None = None
        self._load_personal_config()
        self._routes: list[_Route] = [
            _Route("GET", "/api/trips", self._list),
            _Route("POST", "/api/trips", self._create),
            _Route("GET", "/api/trips/{id}", self._get),
            _Route("PUT", "/api/trips/{id}", self._update),
            _Route("DELETE", "/api/trips/{id}", self._delete),
            _Route("GET", "/api/stats", self._stats),
            _Route("GET", "/api/health", self._health),
            _Route("GET", "/api/config", self._config_handler),
            _Route("GET", "/api/extras/{resource}", self._list_extras),
            _Route("GET", "/api/extras/{resource}/{id}", self._get_extras),
            _Route("PUT", "/api/extras/{resource}/{id}", self._put_extras),
            _Route("GET", "/api/tier", self._tier),
            _Route("GET", "/ui", self._dashboard),
            _Route("GET", "/ui/", self._dashboard),
            _Route("GET", "/", self._root),
        ]

    def _load_personal_config(self) -> None:
        path = self.data_dir / CONFIG_FILENAME
        try:
            raw = path.read_bytes()
        except OSError:
            return
        try:
            config = _loads(raw.decode("utf-8", errors="replace"))
        except ValueError as exc:
            logger.warning("waystation: warning: could not parse config.json: %s", exc)
            return
        if config is not None and not isinstance(config, dict):
            logger.warning("waystation: warning: could not parse config.json: not an object")
            return
        self._config = config
        logger.info("waystation: loaded personalization from %s", path)

    def handle(
        self,
        method: str,
        path: str,
        query: Mapping[str, str] | str | None = None,
        body: bytes | str = b"",
    ) -> Response:
        """Answer one request and return its response."""
        values, raw_query = _first_values(query)
        if isinstance(body, str):
            body = body.encode("utf-8")
        cleaned = _clean_path(path)
        if cleaned != path:
            location = cleaned + (f"?{raw_query}" if raw_query else "")
            return _redirect(location, HTTPStatus.MOVED_PERMANENTLY, method)

        candidates = [(route, params) for route in self._routes if (params := route.match(path)) is not None]
        for route, params in candidates:
            if route.accepts(method):
                response = route.handler(_Request(method, path, values, body, params))
                if method == "HEAD":
                    response.body = b""
                return response

        allowed = {route.method for route, _ in candidates}
        if "GET" in allowed:
            allowed.add("HEAD")
        response = _plain_error(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed")
        response.headers["Allow"] = ", ".join(sorted(allowed))
        return response

    def __call__(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO", "").encode("latin-1").decode("utf-8", errors="replace")
        query = environ.get("QUERY_STRING", "")
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        body = environ["wsgi.input"].read(length) if length > 0 else b""
        response = self.handle(method, path, query, body)
        headers = list(response.headers.items())
        if method != "HEAD":
            headers.append(("Content-Length", str(len(response.body))))
        start_response(f"{response.status} {HTTPStatus(response.status).phrase}", headers)
        return [response.body]

    # ─── routing helpers ──────────────────────────────────────────

    def _root(self, request: _Request) -> Response:
        if request.path != "/":
            return _plain_error(HTTPStatus.NOT_FOUND, "404 page not found")
        return _redirect("/ui", HTTPStatus.FOUND, request.method)

    def _dashboard(self, request: _Request) -> Response:
        return Response(200, dashboard_html().encode("utf-8"), {"Content-Type": _HTML_TYPE})

    def _tier(self, request: _Request) -> Response:
        return _json(200, {"tier": self.limits.tier, "upgrade_url": UPGRADE_URL})

    def _config_handler(self, request: _Request) -> Response:
        return _json(200, self._config if self._config is not None else {})

    # ─── extras ───────────────────────────────────────────────────

    def _list_extras(self, request: _Request) -> Response:
        stored = self.db.all_extras(request.params["resource"])
        try:
            decoded = {record_id: _loads(data) for record_id, data in sorted(stored.items())}
        except ValueError:
            return Response(200, b"", {"Content-Type": _JSON_TYPE})
        return _json(200, decoded)

    def _get_extras(self, request: _Request) -> Response:
        data = self.db.get_extras(request.params["resource"], request.params["id"])
        return Response(200, data.encode("utf-8"), {"Content-Type": _JSON_TYPE})

    def _put_extras(self, request: _Request) -> Response:
        text = request.body.decode("utf-8", errors="replace")
        try:
            probe = _loads(text)
        except ValueError:
            return _error(400, "invalid json")
        if probe is not None and not isinstance(probe, dict):
            return _error(400, "invalid json")
        try:
            self.db.set_extras(request.params["resource"], request.params["id"], text)
        except sqlite3.Error:
            return _error(500, "save failed")
        return _json(200, {"ok": "saved"})

    # ─── trips ────────────────────────────────────────────────────

    def _list(self, request: _Request) -> Response:
        query = request.query.get("q", "")
        filters: dict[str, str] = {}
        status = request.query.get("status", "")
        if status:
            filters["status"] = status
        if query or filters:
            trips = self.db.search(query, filters)
        else:
            trips = self.db.list()
        return _json(200, {"trips": [trip.to_dict() for trip in trips]})

    def _trip_or_null(self, trip_id: str) -> dict[str, Any] | None:
        trip = self.db.get(trip_id)
        return trip.to_dict() if trip is not None else None

    def _create(self, request: _Request) -> Response:
        if self.limits.max_items > 0 and self.db.count() >= self.limits.max_items:
            return _error(402, f"Free tier limit reached. Upgrade at {UPGRADE_URL}")
        try:
            trip = _trip_from_json(request.body)
        except _DecodeError:
            return _error(400, "invalid json")
        if not trip.name:
            return _error(400, "name required")
        try:
            self.db.create(trip)
        except sqlite3.Error:
            return _error(500, "create failed")
        return _json(201, self._trip_or_null(trip.id))

    def _get(self, request: _Request) -> Response:
        trip = self.db.get(request.params["id"])
        if trip is None:
            return _error(404, "not found")
        return _json(200, trip.to_dict())

    def _update(self, request: _Request) -> Response:
        existing = self.db.get(request.params["id"])
        if existing is None:
            return _error(404, "not found")
        try:
            patch = _trip_from_json(request.body)
        except _DecodeError:
            return _error(400, "invalid json")
        kept = {name: getattr(existing, name) for name in _MERGED_FIELDS if not getattr(patch, name)}
        merged = replace(patch, id=existing.id, created_at=existing.created_at, **kept)
        try:
            self.db.update(merged)
        except sqlite3.Error:
            return _error(500, "update failed")
        return _json(200, self._trip_or_null(merged.id))

    def _delete(self, request: _Request) -> Response:
        trip_id = request.params["id"]
        with contextlib.suppress(sqlite3.Error):
            self.db.delete(trip_id)
        with contextlib.suppress(sqlite3.Error):
            self.db.delete_extras(RESOURCE_NAME, trip_id)
        return _json(200, {"deleted": "ok"})

    def _stats(self, request: _Request) -> Response:
        stats = self.db.stats()
        stats["by_status"] = dict(sorted(stats.get("by_status", {}).items()))
        return _json(200, dict(sorted(stats.items())))

    def _health(self, request: _Request) -> Response:
        return _json(200, {"count": self.db.count(), "service": SERVICE_NAME, "status": "ok"})