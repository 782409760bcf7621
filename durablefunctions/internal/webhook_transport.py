# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter

import durablefunctions.internal.shared as shared

# Added to every requested timeout so the wire-level timeout fires after the caller's own deadline
TIMEOUT_GRACE_MS = 500

_CHUNK_SIZE = 8192


@dataclass(frozen=True)
class HttpResult:
    status: int
    body: Any
    headers: Mapping[str, str] = field(default_factory=dict)


class WebhookTransport(ABC):
    """Executes exactly one HTTP request/response exchange against a webhook URL.

    Concrete transports are bound to a single URL scheme. Use
    :func:`get_webhook_transport` to pick the right one for a URL.
    """

    scheme: str

    def get(self, url: str, timeout_ms: Optional[int] = None) -> HttpResult:
        return self._call_webhook(url, "GET", None, timeout_ms)

    def post(self, url: str, body: Optional[Any] = None, timeout_ms: Optional[int] = None) -> HttpResult:
        return self._call_webhook(url, "POST", body, timeout_ms)

    def delete(self, url: str, timeout_ms: Optional[int] = None) -> HttpResult:
        return self._call_webhook(url, "DELETE", None, timeout_ms)

    @abstractmethod
    def _configure_session(self, session: requests.Session) -> None:
        pass

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        # Only this transport's scheme is routable through the session
        session.adapters.clear()
        session.mount(f"{self.scheme}://", HTTPAdapter())
        self._configure_session(session)
        return session

    def _call_webhook(self, url: str, method: str, body: Optional[Any], timeout_ms: Optional[int]) -> HttpResult:
        scheme = urlparse(url).scheme.lower()
        if scheme != self.scheme:
            raise ValueError(
                f"Unrecognized request protocol: {scheme}:. This transport only accepts {self.scheme}: URLs.")

        data = None
        if method == "POST" and body is not None:
            data = shared.to_json(body).encode("utf-8")

        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(data)) if data is not None else "0",
        }

        timeout = None
        if timeout_ms:
            timeout = (timeout_ms + TIMEOUT_GRACE_MS) / 1000

        with self._new_session() as session:
            with session.request(method, url, data=data, headers=headers, timeout=timeout, stream=True) as res:
                buffer = bytearray()
                for chunk in res.iter_content(chunk_size=_CHUNK_SIZE):
                    buffer.extend(chunk)
                text = buffer.decode("utf-8")
                return HttpResult(
                    status=res.status_code,
                    body=shared.from_json(text) if text.strip() else None,
                    headers=res.headers)


class PlainTextWebhookTransport(WebhookTransport):
    scheme = "http"

    def _configure_session(self, session: requests.Session) -> None:
        pass


class TlsWebhookTransport(WebhookTransport):
    scheme = "https"

    def __init__(self, verify: Union[bool, str] = True):
        """Creates a TLS transport.

        Args:
            verify (bool | str): Whether to verify the server certificate, or a path to a CA bundle.
        """
        self._verify = verify

    def _configure_session(self, session: requests.Session) -> None:
        session.verify = self._verify


def get_webhook_transport(url: str) -> WebhookTransport:
    scheme = urlparse(url).scheme.lower()
    if scheme in shared.SECURE_PROTOCOLS:
        return TlsWebhookTransport()
    elif scheme in shared.INSECURE_PROTOCOLS:
        return PlainTextWebhookTransport()
    raise ValueError(f"Unrecognized request protocol: {scheme}:. Only http: and https: are accepted.")

