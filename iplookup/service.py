from pydantic import ValidationError

from iplookup.cache import ResponseCache
from iplookup.clients.base import BaseIPLookupClient
from iplookup.clients.ipinfo_client import IpInfoClient
from iplookup.config import Settings
from iplookup.logger import logger
from iplookup.models.common import IPInfoData, LookupResult
from iplookup.models.request_models import IPLookupRequest


class IpLookupService:
    """Request/cache/render pipeline minus the rendering.

    - Explicit IPs are served from the cache while the entry is fresh, unless
      `request.refresh` is set or `request.use_cache` is off.
    - Self lookups always go to the provider: the caller's address is only known
      once the provider answers. The answer is cached under the reported IP.
    - Every fetched response is validated by the client before it is persisted.
    """

    def __init__(self, client: BaseIPLookupClient, cache: ResponseCache | None = None) -> None:
        self._client = client
        self._cache = cache

    @classmethod
    def from_settings(cls, settings: Settings) -> "IpLookupService":
        client = IpInfoClient(
            base_url=settings.base_url,
            token=settings.token,
            timeout_seconds=settings.timeout_seconds,
        )
        cache = ResponseCache(settings.cache_dir, settings.cache_ttl_seconds)
        return cls(client, cache)

    async def lookup(self, request: IPLookupRequest) -> LookupResult:
        cache = self._cache if request.use_cache and self._cache is not None and self._cache.enabled else None

        if request.is_self_lookup:
            logger.info("Performing self IP lookup")
            data = await self._client.lookup_client_ip()
        else:
            if cache is not None and not request.refresh:
                cached = self._from_cache(cache, request.ip)
                if cached is not None:
                    logger.info(f"Serving cached response ip={request.ip}")
                    return LookupResult(data=cached, from_cache=True)
            logger.info(f"Performing explicit IP lookup ip={request.ip} refresh={request.refresh}")
            data = await self._client.lookup_ip(request.ip)

        if cache is not None:
            # Explicit lookups stay keyed by the requested address; only self
            # lookups learn their key from the response.
            cache.put(data.ip if request.is_self_lookup else request.ip, data.to_payload())
        return LookupResult(data=data, from_cache=False)

    @staticmethod
    def _from_cache(cache: ResponseCache, ip: str) -> IPInfoData | None:
        payload = cache.get(ip)
        if payload is None:
            return None
        try:
            return IPInfoData.model_validate(payload)
        except ValidationError as exc:
            logger.warning(f"Discarding cached response that no longer validates ip={ip} error={exc}")
            cache.discard(ip)
            return None
