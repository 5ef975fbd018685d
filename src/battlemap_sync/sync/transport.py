"""
Transports for the session battlemap endpoint.

Requests are non-blocking: results are delivered through callbacks from the
Qt event loop. Errors are reported as human readable strings.
"""

import logging
from typing import Any, Callable, Optional

import orjson
from PySide6.QtCore import QByteArray, QObject, QUrl
from PySide6.QtNetwork import QNetworkAccessManager, QNetworkReply, QNetworkRequest

from ..settings import AppSettings

SuccessCallback = Callable[[dict[str, Any]], None]
ErrorCallback = Callable[[str], None]


class BattlemapTransport:
    """Interface for loading and storing one session's battlemap."""

    def fetch_battlemap(self, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        """Request the current battlemap."""
        raise NotImplementedError

    def store_battlemap(
        self, payload: dict[str, Any], on_success: SuccessCallback, on_error: ErrorCallback
    ) -> None:
        """Replace the battlemap; ``on_success`` receives the stored state."""
        raise NotImplementedError


class QtBattlemapTransport(BattlemapTransport):
    """HTTP transport using ``QNetworkAccessManager``.

    Talks to ``GET``/``PUT {server_url}/api/sessions/{session_id}/battlemap``.
    """

    def __init__(
        self,
        server_url: str,
        session_id: int | str,
        api_token: str = "",
        timeout_ms: int = 10000,
        parent: Optional[QObject] = None,
    ):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.endpoint = f"{server_url.rstrip('/')}/api/sessions/{session_id}/battlemap"
        self.api_token = api_token
        self.timeout_ms = timeout_ms
        self.manager = QNetworkAccessManager(parent)

    @classmethod
    def from_settings(
        cls, settings: AppSettings, session_id: int | str, parent: Optional[QObject] = None
    ) -> "QtBattlemapTransport":
        """Create a transport configured from application settings."""
        return cls(
            server_url=settings.sync.server_url,
            session_id=session_id,
            api_token=settings.sync.api_token,
            timeout_ms=settings.sync.request_timeout_ms,
            parent=parent,
        )

    def fetch_battlemap(self, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        reply = self.manager.get(self._build_request())
        self._watch(reply, "GET", on_success, on_error)

    def store_battlemap(
        self, payload: dict[str, Any], on_success: SuccessCallback, on_error: ErrorCallback
    ) -> None:
        body = QByteArray(orjson.dumps(payload))
        reply = self.manager.put(self._build_request(), body)
        self._watch(reply, "PUT", on_success, on_error)

    def _build_request(self) -> QNetworkRequest:
        request = QNetworkRequest(QUrl(self.endpoint))
        request.setHeader(QNetworkRequest.KnownHeaders.ContentTypeHeader, "application/json")
        request.setRawHeader(b"Accept", b"application/json")
        if self.api_token:
            request.setRawHeader(b"Authorization", f"Bearer {self.api_token}".encode("utf-8"))
        request.setTransferTimeout(self.timeout_ms)
        return request

    def _watch(
        self,
        reply: QNetworkReply,
        method: str,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        self.logger.debug(f"{method} {self.endpoint}")
        reply.finished.connect(lambda: self._finished(reply, method, on_success, on_error))

    def _finished(
        self,
        reply: QNetworkReply,
        method: str,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        try:
            if reply.error() != QNetworkReply.NetworkError.NoError:
                status = reply.attribute(QNetworkRequest.Attribute.HttpStatusCodeAttribute)
                on_error(f"{method} {self.endpoint} failed (HTTP {status}): {reply.errorString()}")
                return

            body = reply.readAll().data()
            try:
                payload = orjson.loads(body) if body else {}
            except orjson.JSONDecodeError as e:
                on_error(f"{method} {self.endpoint} returned invalid JSON: {e}")
                return

            if not isinstance(payload, dict):
                on_error(f"{method} {self.endpoint} returned {type(payload).__name__}, expected object")
                return

            on_success(payload)
        finally:
            reply.deleteLater()
