from http import HTTPStatus
from typing import Any

import httpx
from pydantic import ValidationError

from iplookup.clients.base import BaseIPLookupClient
from iplookup.errors import InvalidIpError, IpNotFoundError, ReservedIpError, UpstreamServiceError
from iplookup.logger import logger
from iplookup.models.common import IPInfoData

DEFAULT_BASE_URL = "https://ipinfo.io"
DEFAULT_TIMEOUT_SECONDS = 5.0


class IpInfoClient(BaseIPLookupClient):
    """Client for the https://ipinfo.io JSON API.

    The free tier works without a token; a token unlocks higher quotas and the
    `privacy`/`abuse` blocks. A single request is made per lookup, bounded by
    one timeout; there is no retry.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds

    async def lookup_ip(self, ip: str) -> IPInfoData:
        """Look up information for an explicit IP address."""
        url = f"{self._base_url}/{ip}/json"
        return await self._request(url)

    async def lookup_client_ip(self) -> IPInfoData:
        """Look up information for the calling machine's public IP address."""
        url = f"{self._base_url}/json"
        return await self._request(url)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, url: str) -> IPInfoData:
        """Perform the HTTP request, validate the body and normalize it."""
        logger.debug(f"Requesting url={url} authenticated={bool(self._token)} timeout={self._timeout_seconds}")
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, headers=self._headers()) as client:
                response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise UpstreamServiceError(
                f"Request to IP provider timed out after {self._timeout_seconds}s: {repr(exc)}"
            ) from exc
        except httpx.RequestError as exc:
            raise UpstreamServiceError(f"Request to IP provider failed: {repr(exc)}") from exc

        logger.debug(f"Received status={response.status_code} url={url}")
        self._handle_http_errors(response)

        data = self._parse_json(response)
        self._handle_provider_error(data)

        return self._normalize_payload(data)

    def _handle_http_errors(self, response: httpx.Response) -> None:
        """Map HTTP status codes from the provider to domain-specific errors."""
        status_code = response.status_code

        if status_code in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
            raise UpstreamServiceError(
                f"Authentication with IP provider failed (HTTP {status_code}); check the API token."
            )
        if status_code == HTTPStatus.NOT_FOUND:
            raise IpNotFoundError("No information found for this IP address.")
        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            # 429 Quota exceeded / rate limit hit.
            raise UpstreamServiceError("IP provider rate limit or quota exceeded (HTTP 429).")
        if HTTPStatus.BAD_REQUEST <= status_code < HTTPStatus.INTERNAL_SERVER_ERROR:
            raise UpstreamServiceError(f"IP provider returned HTTP {status_code}: {response.text}")
        if status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            raise UpstreamServiceError(f"IP provider returned HTTP {status_code}: {response.text}")

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        """Normalize provider-specific error payloads into domain exceptions.

        Examples of bodies ipinfo.io sends:
            { "status": 404, "error": { "title": "Wrong ip", "message": "Please provide a valid IP address" } }
            { "error": { "title": "Rate limit exceeded", "message": "..." } }
            { "ip": "127.0.0.1", "bogon": true }
        """
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                title = str(error.get("title") or "")
                message = str(error.get("message") or "")
                reason = ": ".join(part for part in (title, message) if part) or "Unknown error from ipinfo.io"
            else:
                reason = str(error)
            lower_reason = reason.lower()

            if "wrong ip" in lower_reason or "invalid" in lower_reason:
                raise InvalidIpError(reason)
            if "rate" in lower_reason or "quota" in lower_reason:
                raise UpstreamServiceError(f"IP provider rate limit or quota exceeded: {reason}")
            raise UpstreamServiceError(reason)

        if data.get("bogon") is True:
            raise ReservedIpError(f"{data.get('ip') or 'Address'} is a bogon (reserved or private) address.")

    @staticmethod
    def _parse_json(response: httpx.Response) -> dict[str, Any]:
        if not response.text.strip():
            raise UpstreamServiceError("Empty response from IP provider.")
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamServiceError(f"Failed to decode IP provider response as JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise UpstreamServiceError(f"Unexpected IP provider response, expected a JSON object: {response.text}")
        return data

    @staticmethod
    def _normalize_payload(data: dict[str, Any]) -> IPInfoData:
        try:
            return IPInfoData.model_validate(data)
        except ValidationError as exc:
            raise UpstreamServiceError(f"IP provider response failed validation: {exc}") from exc
