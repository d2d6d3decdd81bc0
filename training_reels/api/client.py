"""Thin async JSON client for the training reels REST API."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Mapping, Optional

import httpx

from ..services.credentials import CredentialStore
from ..services.events import emit_http_event


LOGGER = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Raised for any non-2xx API response."""

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        text = f"API Error: {status}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)
        self.status = status
        self.server_message = message


class AuthenticationError(ApiError):
    """Raised on HTTP 401 after the stored token has been discarded."""


def _extract_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


class ApiClient:
    """Send JSON requests with bearer authentication and uniform error handling."""

    def __init__(
        self,
        base_url: str,
        *,
        credentials: Optional[CredentialStore] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self._credentials.load_token() if self._credentials is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}{endpoint}"
        start = time.perf_counter()
        response = await self._client.request(
            method,
            url,
            json=json,
            params=params,
            headers=self._headers(),
        )
        duration_ms = (time.perf_counter() - start) * 1000.0
        emit_http_event(
            method,
            endpoint,
            payload={"status": response.status_code},
            duration_ms=duration_ms,
            level=logging.DEBUG if response.is_success else logging.WARNING,
        )

        if not response.is_success:
            message = _extract_message(response)
            if response.status_code == 401:
                if self._credentials is not None:
                    self._credentials.clear()
                raise AuthenticationError(401, message or "Sign in required")
            raise ApiError(response.status_code, message)

        if not response.content:
            return None
        return response.json()

    async def get(self, endpoint: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: Any = None) -> Any:
        return await self.request("POST", endpoint, json=data if data is not None else {})

    async def put(self, endpoint: str, data: Any = None) -> Any:
        return await self.request("PUT", endpoint, json=data if data is not None else {})

    async def patch(self, endpoint: str, data: Any = None) -> Any:
        return await self.request("PATCH", endpoint, json=data if data is not None else {})

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)


__all__ = ["ApiClient", "ApiError", "AuthenticationError"]
