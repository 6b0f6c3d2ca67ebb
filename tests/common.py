import json
from http import HTTPStatus
from typing import Any

import httpx

from iplookup.models.common import IPInfoData

GOOGLE_DNS_PAYLOAD: dict[str, Any] = {
    "ip": "8.8.8.8",
    "hostname": "dns.google",
    "city": "Mountain View",
    "region": "California",
    "country": "US",
    "loc": "37.4056,-122.0775",
    "org": "AS15169 Google LLC",
    "postal": "94043",
    "timezone": "America/Los_Angeles",
    "anycast": True,
}

FULL_PAYLOAD: dict[str, Any] = {
    **GOOGLE_DNS_PAYLOAD,
    "privacy": {"vpn": False, "proxy": False, "tor": False, "relay": False, "hosting": True, "service": ""},
    "abuse": {
        "address": "US, CA, Mountain View, 1600 Amphitheatre Parkway, 94043",
        "country": "US",
        "email": "network-abuse@google.com",
        "name": "Abuse",
        "network": "8.8.8.0/24",
        "phone": "+1-650-253-0000",
    },
}


class MockResponse:
    """Stand-in for httpx.Response; `payload` is serialized into `text` unless `text` is given."""

    def __init__(self, status_code: int, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self) -> Any:
        return json.loads(self.text)


class MockAsyncClient:
    """Minimal async context-manager mock for httpx.AsyncClient.

    Records constructor kwargs and requested URLs so tests can assert on them.
    """

    def __init__(self, response: MockResponse, **kwargs: Any) -> None:
        self._response = response
        self.kwargs = kwargs
        self.requested_urls: list[str] = []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str) -> MockResponse:
        self.requested_urls.append(url)
        return self._response


class FakeAsyncClientFactory:
    """Replacement for the httpx.AsyncClient class returning a fixed response.

    Every instance it creates is kept in `clients`.
    """

    def __init__(self, response: MockResponse) -> None:
        self._response = response
        self.clients: list[MockAsyncClient] = []

    def __call__(self, *args: Any, **kwargs: Any) -> MockAsyncClient:
        client = MockAsyncClient(self._response, **kwargs)
        self.clients.append(client)
        return client

    @property
    def requested_urls(self) -> list[str]:
        return [url for client in self.clients for url in client.requested_urls]


class FailingAsyncClient:
    """Async client that raises on enter to simulate a network failure or timeout."""

    def __init__(self, url: str, error_cls: type[httpx.RequestError] = httpx.RequestError) -> None:
        self._url = url
        self._error_cls = error_cls

    def __call__(self, *args: Any, **kwargs: Any) -> "FailingAsyncClient":
        return self

    async def __aenter__(self) -> "FailingAsyncClient":
        request = httpx.Request("GET", self._url)
        raise self._error_cls("Network failure", request=request)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str) -> MockResponse:
        return MockResponse(status_code=HTTPStatus.OK, payload={})


class StubLookupClient:
    """In-memory BaseIPLookupClient double counting calls."""

    def __init__(self, payload: dict[str, Any] | None = None, exc: Exception | None = None) -> None:
        self._payload = payload if payload is not None else GOOGLE_DNS_PAYLOAD
        self._exc = exc
        self.calls: list[str | None] = []

    async def lookup_ip(self, ip: str) -> IPInfoData:
        self.calls.append(ip)
        if self._exc is not None:
            raise self._exc
        return IPInfoData.model_validate({**self._payload, "ip": ip})

    async def lookup_client_ip(self) -> IPInfoData:
        self.calls.append(None)
        if self._exc is not None:
            raise self._exc
        return IPInfoData.model_validate(self._payload)
