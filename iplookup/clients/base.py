from abc import ABC, abstractmethod

from iplookup.models.common import IPInfoData


class BaseIPLookupClient(ABC):
    """Abstract base for IP lookup clients.

    Implementations fetch a single record from a remote provider and return it
    as a validated `IPInfoData`, raising the `IpProviderError` family on failure.
    """

    @abstractmethod
    async def lookup_ip(self, ip: str) -> IPInfoData:
        """Look up information for an explicit IP address."""
        raise NotImplementedError

    @abstractmethod
    async def lookup_client_ip(self) -> IPInfoData:
        """Look up information for the calling machine's public IP address."""
        raise NotImplementedError
