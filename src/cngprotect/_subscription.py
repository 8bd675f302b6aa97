"""Telemetry subscription over the Firebase Realtime Database streaming API.

The REST endpoint ``<database_url><path>.json`` answers a request with
``Accept: text/event-stream`` by holding the connection open and sending
server-sent events:

* ``put``   ``{"path": p, "data": d}``  replace the value at ``p``
* ``patch`` ``{"path": p, "data": {...}}``  update children of ``p``
* ``keep-alive``  sent every ~30 s, no payload
* ``cancel``  read access revoked by security rules
* ``auth_revoked``  the access token expired; reconnect with a new one

The first event after connecting is a ``put`` at ``/`` with the full value,
so consumers receive the current snapshot immediately, as with a
``value`` listener in the Firebase SDKs.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

import aiohttp
import google.auth.exceptions
import google.auth.transport.requests
from google.oauth2 import service_account

from cngprotect._constants import FIREBASE_SCOPES
from cngprotect.config import BridgeConfig
from cngprotect.exceptions import SubscriptionError

_logger = logging.getLogger(__name__)

# Firebase sends keep-alives every 30 s; three missed ones means the
# connection is dead.
_SOCK_READ_TIMEOUT = 90.0


@dataclass(frozen=True)
class StreamMessage:
    """One decoded server-sent event."""

    event: str
    data: Any


async def decode_stream(lines: AsyncIterable[bytes]) -> AsyncIterator[StreamMessage]:
    """Decode raw SSE lines into :class:`StreamMessage` objects.

    ``data`` is JSON-decoded; events whose data is not JSON are logged and
    dropped.
    """
    event = ""
    data_lines: list[str] = []
    async for raw in lines:
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        if line:
            if line.startswith(":"):
                continue
            field, _, value = line.partition(":")
            value = value.removeprefix(" ")
            if field == "event":
                event = value
            elif field == "data":
                data_lines.append(value)
            continue

        if not event and not data_lines:
            continue
        payload_text = "\n".join(data_lines)
        current_event = event or "message"
        event, data_lines = "", []
        try:
            payload = json.loads(payload_text) if payload_text else None
        except json.JSONDecodeError:
            _logger.debug("Dropping %s event with non-JSON data: %r", current_event, payload_text[:200])
            continue
        yield StreamMessage(event=current_event, data=payload)


def _split_path(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def apply_put(tree: Any, path: str, data: Any) -> Any:
    """Return a copy of *tree* with *data* stored at *path* (``None`` deletes)."""
    parts = _split_path(path)
    if not parts:
        return copy.deepcopy(data)

    root: dict[str, Any] = copy.deepcopy(tree) if isinstance(tree, dict) else {}
    node = root
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    if data is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = copy.deepcopy(data)
    return root or None


def apply_patch(tree: Any, path: str, data: dict[str, Any]) -> Any:
    """Return a copy of *tree* with each child in *data* written under *path*."""
    base = "/".join(_split_path(path))
    for key, value in data.items():
        tree = apply_put(tree, f"{base}/{key}", value)
    return tree


class NodeMirror:
    """Local copy of the watched node, rebuilt from ``put``/``patch`` events."""

    def __init__(self) -> None:
        self.value: Any = None

    def apply(self, message: StreamMessage) -> bool:
        """Fold *message* in. Returns ``True`` if it was a data event."""
        if message.event not in ("put", "patch"):
            return False
        body = message.data
        if not isinstance(body, dict) or not isinstance(body.get("path"), str):
            _logger.debug("Malformed %s event: %r", message.event, body)
            return False
        if message.event == "put":
            self.value = apply_put(self.value, body["path"], body.get("data"))
            return True
        patch = body.get("data")
        if not isinstance(patch, dict):
            _logger.debug("Malformed patch data: %r", patch)
            return False
        self.value = apply_patch(self.value, body["path"], patch)
        return True


class _Reconnect(Exception):
    """Internal signal: reopen the stream."""


class FirebaseSubscription:
    """Async iterable of the watched node's value, one item per change.

    Usage::

        async with FirebaseSubscription(config) as subscription:
            async for value in subscription:
                ...

    Dropped connections and revoked tokens are handled by reconnecting
    after ``config.subscription_reconnect_delay`` seconds. A ``cancel``
    event or a non-200 response raises :class:`SubscriptionError`.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        credentials: service_account.Credentials | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._credentials = credentials
        if self._credentials is None and config.service_account_path:
            self._credentials = service_account.Credentials.from_service_account_file(
                config.service_account_path,
                scopes=list(FIREBASE_SCOPES),
            )

    async def __aenter__(self) -> FirebaseSubscription:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def __aiter__(self) -> AsyncIterator[Any]:
        return self.values()

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise SubscriptionError("Subscription not opened. Use 'async with FirebaseSubscription(...)'")
        return self._http_session

    async def _access_token(self, *, force_refresh: bool = False) -> str | None:
        credentials = self._credentials
        if credentials is None:
            return None
        if force_refresh or not credentials.valid:
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, credentials.refresh, google.auth.transport.requests.Request())
            except google.auth.exceptions.GoogleAuthError as exc:
                raise SubscriptionError(f"Could not obtain database access token: {exc}") from exc
        return str(credentials.token)

    async def values(self) -> AsyncIterator[Any]:
        """Yield the node's value now and after every change, forever."""
        force_refresh = False
        while True:
            try:
                async for value in self._stream_once(force_refresh=force_refresh):
                    yield value
                _logger.info("Telemetry stream closed by server, reconnecting")
                force_refresh = False
            except _Reconnect as exc:
                _logger.info("%s, reconnecting", exc)
                force_refresh = True
            except (aiohttp.ClientError, TimeoutError) as exc:
                _logger.warning("Telemetry stream interrupted: %s", exc)
                force_refresh = False
            await asyncio.sleep(self._config.subscription_reconnect_delay)

    async def _stream_once(self, *, force_refresh: bool) -> AsyncIterator[Any]:
        http = self._require_session()
        params: dict[str, str] = {}
        token = await self._access_token(force_refresh=force_refresh)
        if token:
            params["access_token"] = token

        url = self._config.stream_url
        _logger.debug("GET %s (stream)", url)
        timeout = aiohttp.ClientTimeout(total=None, sock_read=_SOCK_READ_TIMEOUT)
        async with http.get(
            url,
            params=params,
            headers={"Accept": "text/event-stream"},
            timeout=timeout,
        ) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise SubscriptionError(
                    f"HTTP {resp.status} opening telemetry stream: {text[:200]}",
                    status_code=resp.status,
                )
            _logger.info("Subscribed to %s", self._config.device_path)

            mirror = NodeMirror()
            async for message in decode_stream(resp.content):
                if message.event == "keep-alive":
                    continue
                if message.event == "cancel":
                    raise SubscriptionError(f"Telemetry stream cancelled by server: {message.data}")
                if message.event == "auth_revoked":
                    raise _Reconnect(f"Database access token revoked ({message.data})")
                if mirror.apply(message):
                    yield copy.deepcopy(mirror.value)
