"""JSON-over-HTTP transport on ``urllib.request``.

:class:`UrllibTransport` performs raw requests and reports every HTTP
status as a response; only failures where no response arrived are raised.
:class:`HttpClient` adds authentication, JSON encoding and the single
place where statuses are translated into the flowershow error taxonomy.
"""

from __future__ import annotations

import json
import logging
import socket
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .exceptions import (
    PublishError,
    RemoteAccessDenied,
    RemoteAuthFailed,
    RemoteConnectionError,
    RemoteNotFound,
    RemoteRequestFailed,
    RemoteUnavailable,
)

logger = logging.getLogger(__name__)

USER_AGENT = "flowershow-publish"


@dataclass
class HttpResponse:
    """Status, headers and raw body of a completed request."""
    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))


class Transport(Protocol):
    def request(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float,
    ) -> HttpResponse: ...


class UrllibTransport:
    """Default transport using :func:`urllib.request.urlopen`."""

    def request(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float,
    ) -> HttpResponse:
        req = Request(url, data=body, headers=dict(headers or {}), method=method)
        try:
            with urlopen(req, timeout=timeout) as resp:
                return HttpResponse(resp.status, resp.read(), dict(resp.headers.items()))
        except HTTPError as e:
            try:
                payload = e.read()
            finally:
                e.close()
            return HttpResponse(e.code, payload, dict(e.headers.items()) if e.headers else {})
        except URLError as e:
            if isinstance(e.reason, (socket.timeout, TimeoutError)):
                raise RemoteUnavailable(f"Request timed out: {e.reason}") from e
            raise RemoteConnectionError(f"Cannot reach {url}: {e.reason}") from e
        except (socket.timeout, TimeoutError) as e:
            raise RemoteUnavailable(f"Request timed out: {e}") from e
        except ConnectionError as e:
            raise RemoteUnavailable(f"Connection dropped: {e}") from e


_STATUS_ERRORS: dict[int, type[PublishError]] = {
    401: RemoteAuthFailed,
    403: RemoteAccessDenied,
    404: RemoteNotFound,
}


def _error_message(response: HttpResponse) -> str:
    """Best-effort extraction of the remote's error message."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        msg = str(payload["message"])
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            details = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            msg = f"{msg}: {details}"
        return msg
    text = response.body.decode("utf-8", "replace").strip()
    return text[:200] or f"HTTP {response.status}"


def error_for_status(
    response: HttpResponse, *, operation: str, path: str | None = None,
) -> PublishError:
    """Translate a failed *response* into the matching :class:`PublishError`."""
    status = response.status
    cls = _STATUS_ERRORS.get(status)
    if cls is None:
        cls = RemoteUnavailable if status >= 500 else RemoteRequestFailed
    return cls(_error_message(response), operation=operation, path=path, status=status)


class HttpClient:
    """Authenticated JSON client bound to a base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        transport: Transport | None = None,
        accept: str = "application/json",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self.timeout = timeout
        self._transport = transport or UrllibTransport()
        self._accept = accept

    def __repr__(self) -> str:
        return f"HttpClient({self.base_url!r})"

    def url(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            url += ("&" if "?" in url else "?") + urlencode(params)
        return url

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = {"Accept": self._accept, "User-Agent": USER_AGENT}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if extra:
            headers.update(extra)
        return headers

    def request_raw(
        self,
        method: str,
        path: str,
        *,
        body: bytes | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        operation: str,
        subject: str | None = None,
        allow: tuple[int, ...] = (),
    ) -> HttpResponse:
        """Perform a request; statuses >= 400 not in *allow* raise.

        *operation* and *subject* (usually the vault path) are attached to
        any error raised.
        """
        url = self.url(path, params)
        logger.debug("%s %s", method, url)
        try:
            response = self._transport.request(
                method, url, body=body, headers=self._headers(headers), timeout=self.timeout,
            )
        except PublishError as exc:
            exc.operation = exc.operation or operation
            exc.path = exc.path or subject
            raise
        if response.status >= 400 and response.status not in allow:
            raise error_for_status(response, operation=operation, path=subject)
        return response

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        operation: str,
        subject: str | None = None,
        allow: tuple[int, ...] = (),
    ) -> HttpResponse:
        """Like :meth:`request_raw`, JSON-encoding *json_body*."""
        body = None
        extra = dict(headers or {})
        if json_body is not None:
            body = json.dumps(json_body).encode("utf-8")
            extra.setdefault("Content-Type", "application/json")
        return self.request_raw(
            method, path, body=body, params=params, headers=extra,
            operation=operation, subject=subject, allow=allow,
        )
