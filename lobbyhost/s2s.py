"""Server-to-server client for the lobby backend.

Requests are queued and sent one at a time; :meth:`S2SClient.run_callbacks`
must be called regularly (for example once per server tick) to collect
responses, run callbacks, send the next queued request and keep the session
alive with heartbeats.
"""

from __future__ import annotations

import enum
import json
import logging
import time
import urllib.error
import urllib.request
from collections import deque
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional, Protocol

__all__ = [
    "State",
    "HttpStatus",
    "HttpResult",
    "UrllibTransport",
    "S2SClient",
    "SERVER_SESSION_EXPIRED",
    "DEFAULT_HEARTBEAT_INTERVAL",
    "HTTP_FAILED_RESPONSE",
]

logger = logging.getLogger(__name__)

SERVER_SESSION_EXPIRED = 40365
"""Reason code the backend returns when the server session has expired."""

DEFAULT_HEARTBEAT_INTERVAL = 60.0 * 30.0
"""Seconds between heartbeats unless the backend says otherwise."""

HTTP_FAILED_RESPONSE = '{"status_code":900,"message":"HTTP Request failed"}'
"""Handed to a callback when the HTTP request itself failed."""

Callback = Callable[[str], None]


class State(enum.IntEnum):
    """Authentication state of the client."""

    DISCONNECTED = 0
    AUTHENTICATING = 1
    AUTHENTICATED = 2


class HttpStatus(enum.Enum):
    """Progress of an HTTP request."""

    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class HttpResult:
    """Snapshot of an HTTP request: its progress and, once done, the response."""

    status: HttpStatus
    response_code: int = 0
    body: str = ""


class PendingRequest(Protocol):
    """An HTTP request in flight, as returned by a transport."""

    def poll(self) -> HttpResult: ...

    def cancel(self) -> None: ...


class Transport(Protocol):
    """Sends a JSON body by POST and returns a request that can be polled."""

    def send(self, url: str, body: str) -> PendingRequest: ...


class _FuturePending:
    """A request running on a worker thread."""

    def __init__(self, future: "Future[HttpResult]") -> None:
        self._future = future

    def poll(self) -> HttpResult:
        if not self._future.done():
            return HttpResult(HttpStatus.PROCESSING)
        if self._future.cancelled():
            return HttpResult(HttpStatus.FAILED)
        return self._future.result()

    def cancel(self) -> None:
        self._future.cancel()


class UrllibTransport:
    """Transport that posts JSON with urllib on a small thread pool."""

    def __init__(self, timeout: float = 30.0, max_workers: int = 4) -> None:
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    def send(self, url: str, body: str) -> PendingRequest:
        """Start posting ``body`` to ``url`` and return the pending request."""
        return _FuturePending(self._executor.submit(self._post, url, body))

    def _post(self, url: str, body: str) -> HttpResult:
        request = urllib.request.Request(
            url,
            data=body.encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                text = response.read().decode("utf-8", errors="replace")
                return HttpResult(HttpStatus.SUCCEEDED, response.status, text)
        except urllib.error.HTTPError as exc:
            text = exc.read().decode("utf-8", errors="replace")
            return HttpResult(HttpStatus.SUCCEEDED, exc.code, text)
        except (urllib.error.URLError, OSError, ValueError):
            return HttpResult(HttpStatus.FAILED)

    def close(self) -> None:
        """Stop the worker threads."""
        self._executor.shutdown(wait=False, cancel_futures=True)


@dataclass(eq=False)
class _Request:
    json_string: str
    callback: Optional[Callback]
    http: Optional[PendingRequest] = None

    def cancel(self) -> None:
        if self.http is not None:
            self.http.cancel()


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def _parse_object(text: str) -> Optional[dict]:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class S2SClient:
    """Queue of server-to-server requests sharing one authenticated session."""

    def __init__(
        self,
        app_id: str = "",
        server_name: str = "",
        server_secret: str = "",
        url: str = "",
        auto_auth: bool = False,
        transport: Optional[Transport] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._transport: Transport = transport if transport is not None else UrllibTransport()
        self._clock = clock if clock is not None else time.monotonic
        self._log_enabled = False
        self._packet_id = 0
        self._session_id = ""
        self._heartbeat_start = 0.0
        self._queue: deque[_Request] = deque()
        self._active: Optional[_Request] = None
        self.init(app_id, server_name, server_secret, url, auto_auth)

    def init(self, app_id: str, server_name: str, server_secret: str, url: str, auto_auth: bool) -> None:
        """Set the application settings and return to the disconnected state."""
        self._app_id = app_id
        self._server_name = server_name
        self._server_secret = server_secret
        self._url = url
        self._auto_auth = auto_auth
        self._state = State.DISCONNECTED
        self._heartbeat_interval = DEFAULT_HEARTBEAT_INTERVAL

    @property
    def state(self) -> State:
        return self._state

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def packet_id(self) -> int:
        return self._packet_id

    @property
    def heartbeat_interval(self) -> float:
        return self._heartbeat_interval

    @property
    def pending(self) -> int:
        """Number of requests queued, including the one in flight."""
        return len(self._queue)

    def set_log_enabled(self, enabled: bool) -> None:
        """Log every request and response when ``enabled`` is true."""
        self._log_enabled = enabled

    def authenticate(self, callback: Optional[Callback] = None) -> None:
        """Send an authentication request unless already authenticated."""
        if self._state == State.AUTHENTICATED:
            return
        if callback is None:
            callback = self._on_authenticate
        self._state = State.AUTHENTICATING
        payload = _compact(
            {
                "service": "authenticationV2",
                "operation": "AUTHENTICATE",
                "data": {
                    "appId": self._app_id,
                    "serverName": self._server_name,
                    "serverSecret": self._server_secret,
                },
            }
        )
        request = _Request(payload, callback)
        self._queue.append(request)
        self._send(request)

    def disconnect(self) -> None:
        """Forget the session; the next request starts a new packet sequence."""
        self._state = State.DISCONNECTED
        self._packet_id = 0
        self._session_id = ""

    def request(self, json_string: str, callback: Optional[Callback] = None) -> None:
        """Queue a message; it is sent once the requests ahead of it finish."""
        if self._auto_auth and self._state != State.AUTHENTICATED and not self._queue:
            self.authenticate(self._on_authenticate)

        request = _Request(json_string, callback)
        self._queue.append(request)

        if len(self._queue) == 1 and self._state == State.AUTHENTICATED:
            self._send(request)

    def run_callbacks(self) -> None:
        """Collect a finished response, run its callback and send heartbeats."""
        if self._active is None:
            if self._queue:
                self._active = self._queue[0]
        elif self._process_active() is False:
            return

        if self._state == State.AUTHENTICATED:
            now = self._clock()
            if now - self._heartbeat_start >= self._heartbeat_interval:
                self._send_heartbeat()
                self._heartbeat_start = now

    def close(self) -> None:
        """Cancel every queued request and empty the queue."""
        for request in self._queue:
            request.cancel()
        self._queue.clear()
        self._active = None

    def __enter__(self) -> "S2SClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _process_active(self) -> bool:
        """Handle the active request; False means stop this update early."""
        active = self._active
        assert active is not None
        if active.http is None:
            return True
        result = active.http.poll()

        if result.status == HttpStatus.SUCCEEDED:
            response_message = ""
            message: Optional[dict] = None
            packet = _parse_object(result.body)
            if packet is not None:
                responses = packet.get("messageResponses")
                if isinstance(responses, list) and responses:
                    first = responses[0]
                    message = first if isinstance(first, dict) else {}
                    response_message = _compact(message)
                    if self._state != State.AUTHENTICATED:
                        self._check_auth_credentials(message)
            else:
                logger.error("S2S Invalid JSON: %s", result.body)

            if result.response_code == 200:
                if self._log_enabled:
                    logger.info("S2S Response: %s", response_message)
                self._finish(active, response_message)
                return True

            if message is not None and message.get("reason_code") == SERVER_SESSION_EXPIRED:
                logger.warning("S2S session expired")
                active.cancel()
                active.http = None
                self.disconnect()
                if not self._auto_auth:
                    self.authenticate(self._on_authenticate)
                self._send(active)
                return False

            logger.error("S2S Failed: %s", result.body)
            active.cancel()
            self._finish(active, response_message)
        elif result.status == HttpStatus.FAILED:
            logger.error("S2S Failed")
            active.cancel()
            self._finish(active, HTTP_FAILED_RESPONSE)
        return True

    def _finish(self, active: _Request, response: str) -> None:
        if active.callback is not None:
            active.callback(response)
        if self._queue:
            self._queue.popleft()
        self._active = None
        if self._queue:
            self._send(self._queue[0])

    def _send(self, request: _Request) -> None:
        body = '{"packetId":' + str(self._packet_id)
        if self._session_id:
            body += ',"sessionId":' + json.dumps(self._session_id)
        body += ',"messages":[' + request.json_string + "]}"

        if self._log_enabled:
            logger.info("Sending request:%s", body)

        request.http = self._transport.send(self._url, body)
        self._packet_id += 1

    def _send_heartbeat(self) -> None:
        request = _Request('{"service":"heartbeat","operation":"HEARTBEAT"}', self._on_heartbeat)
        self._queue.append(request)
        self._send(request)

    def _on_heartbeat(self, json_string: str) -> None:
        message = _parse_object(json_string)
        if message is not None and "status" in message and message["status"] != 200:
            return
        self.disconnect()

    def _on_authenticate(self, json_string: str) -> None:
        if self._state == State.AUTHENTICATED:
            return
        message = _parse_object(json_string)
        if message is not None:
            self._check_auth_credentials(message)
        else:
            logger.error("S2S Invalid JSON: %s", json_string)

    def _check_auth_credentials(self, response: Optional[Mapping[str, Any]]) -> None:
        data = response.get("data") if response else None
        if not isinstance(data, Mapping):
            logger.error("S2S Failed To Authenticate")
            return
        heartbeat = data.get("heartbeatSeconds")
        if _is_number(heartbeat):
            self._heartbeat_interval = float(heartbeat)
        session_id = data.get("sessionId")
        if isinstance(session_id, str):
            self._session_id = session_id
        self._heartbeat_start = self._clock()
        self._state = State.AUTHENTICATED
        logger.info("S2S Authenticated")