from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

MALFORMED = object()  # json() raises, like a non-JSON body


class MockAsyncResponse:
    def __init__(
        self,
        json_data: Any,
        *,
        headers: Optional[Dict[str, str]] = None,
        status_code: int = 200,
    ) -> None:
        self._json = json_data
        self.headers = headers or {}
        self.status_code = status_code
        self.text = "" if json_data is MALFORMED else str(json_data)
        self.request = httpx.Request("GET", "https://example.com/mock")

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"HTTP {self.status_code}", request=self.request, response=self
            )

    def json(self) -> Any:
        if self._json is MALFORMED:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json


class MockAsyncClient:
    """Serves queued responses in order and records every call.

    A queued exception instance is raised instead of returned.
    """

    def __init__(self, responses: Iterable[Union[MockAsyncResponse, Exception]]) -> None:
        self._responses: List[Union[MockAsyncResponse, Exception]] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False

    def _next(self, method: str, url: str, **kwargs) -> MockAsyncResponse:
        self.calls.append({"method": method, "url": str(url), **kwargs})
        if not self._responses:
            raise AssertionError("No more mock responses available")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        response.request = httpx.Request(method, str(url))
        return response

    async def get(self, url: str, **kwargs) -> MockAsyncResponse:
        return self._next("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> MockAsyncResponse:
        return self._next("POST", url, **kwargs)


def run(coro):
    """Helper to run async functions in synchronous tests."""
    return asyncio.run(coro)
