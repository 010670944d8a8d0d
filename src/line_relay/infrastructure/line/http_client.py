"""Concrete LINE Messaging API adapter for reply delivery."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

LINE_API_BASE_URL = "https://api.line.me"


@dataclass(frozen=True)
class LineHttpResponse:
    """Normalized HTTP response data returned by transport implementations."""

    status_code: int
    body_bytes: bytes


class LineHttpTransportPort(Protocol):
    """Transport protocol used by the LINE HTTP adapter."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> LineHttpResponse:
        """Execute one HTTP request and return normalized response data."""


class LineAdapterError(RuntimeError):
    """Raised for normalized LINE adapter failures."""


class UrllibLineHttpTransport:
    """urllib-based async transport implementation for LINE HTTP calls."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> LineHttpResponse:
        """Execute HTTP request in a worker thread and normalize HTTP errors."""

        return await asyncio.to_thread(
            self._request_sync,
            method=method,
            url=url,
            headers=headers,
            body=body,
            timeout_seconds=timeout_seconds,
        )

    def _request_sync(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> LineHttpResponse:
        request = Request(url=url, data=body, headers=headers, method=method)
        try:
            with urlopen(request, timeout=timeout_seconds) as response:
                return LineHttpResponse(
                    status_code=int(response.getcode()),
                    body_bytes=response.read(),
                )
        except HTTPError as error:
            return LineHttpResponse(status_code=int(error.code), body_bytes=error.read())
        except URLError as error:
            raise LineAdapterError(f"transport connection failure: {error}") from error


class LineMessagingHttpClient:
    """LINE Messaging API adapter implementing the reply gateway port."""

    def __init__(
        self,
        *,
        channel_access_token: str,
        base_url: str = LINE_API_BASE_URL,
        transport: LineHttpTransportPort | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        token_value = channel_access_token.strip()
        if not token_value:
            raise ValueError("channel_access_token must be a non-empty string")

        self._channel_access_token = token_value
        self._base_url = base_url.rstrip("/")
        self._transport = transport or UrllibLineHttpTransport()
        self._timeout_seconds = timeout_seconds

    async def reply_text(
        self,
        *,
        reply_token: str,
        text: str,
        quote_token: str | None = None,
    ) -> None:
        """Send one text message using a single-use reply token."""

        message: dict[str, object] = {"type": "text", "text": text}
        if quote_token:
            message["quoteToken"] = quote_token
        await self._request(
            operation="reply_message",
            method="POST",
            path="/v2/bot/message/reply",
            payload={"replyToken": reply_token, "messages": [message]},
        )

    async def _request(
        self,
        *,
        operation: str,
        method: str,
        path: str,
        payload: dict[str, object],
    ) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {
            "Authorization": f"Bearer {self._channel_access_token}",
            "Content-Type": "application/json",
        }
        url = f"{self._base_url}{path}"
        try:
            response = await self._transport.request(
                method=method,
                url=url,
                headers=headers,
                body=body,
                timeout_seconds=self._timeout_seconds,
            )
        except Exception as error:  # noqa: BLE001
            raise LineAdapterError(f"{operation} transport failure") from error

        if response.status_code < 200 or response.status_code >= 300:
            details = _decode_error_payload(response.body_bytes)
            raise LineAdapterError(
                f"{operation} failed with status {response.status_code}: {details}"
            )


def _decode_error_payload(payload: bytes) -> str:
    if not payload:
        return "empty response body"
    try:
        decoded = payload.decode("utf-8")
    except UnicodeDecodeError:
        return "<binary>"
    return decoded[:200]
