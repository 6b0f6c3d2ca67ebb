from ipaddress import ip_address

from pydantic import BaseModel, ConfigDict, field_validator


class PrivacyInfo(BaseModel):
    """Privacy detection flags reported for an address (paid API tiers only)."""

    model_config = ConfigDict(extra="allow")

    vpn: bool | None = None
    proxy: bool | None = None
    tor: bool | None = None
    relay: bool | None = None
    hosting: bool | None = None
    service: str | None = None


class AbuseInfo(BaseModel):
    """Abuse contact for the network owning an address."""

    model_config = ConfigDict(extra="allow")

    address: str | None = None
    country: str | None = None
    email: str | None = None
    name: str | None = None
    network: str | None = None
    phone: str | None = None


class IPInfoData(BaseModel):
    """Validated lookup response.

    Only `ip` is required; every other documented field is optional because the
    set returned depends on the API plan and on the address itself. Unknown
    fields are kept (``extra="allow"``) so that JSON output and the cache hold
    what the provider actually sent.
    """

    model_config = ConfigDict(extra="allow")

    ip: str
    hostname: str | None = None
    city: str | None = None
    region: str | None = None
    country: str | None = None
    loc: str | None = None
    org: str | None = None
    postal: str | None = None
    timezone: str | None = None
    privacy: PrivacyInfo | None = None
    abuse: AbuseInfo | None = None

    @field_validator("ip")
    @classmethod
    def _validate_ip(cls, value: str) -> str:
        """The address doubles as the cache key, so it must be a real IP literal."""
        try:
            return str(ip_address(value.strip()))
        except ValueError as exc:
            raise ValueError("ip must be a valid IPv4 or IPv6 address") from exc

    @property
    def coordinates(self) -> tuple[float, float] | None:
        """Parse `loc` ("lat,lon") into floats, or None when missing or malformed."""
        if not self.loc:
            return None
        parts = self.loc.split(",")
        if len(parts) != 2:
            return None
        try:
            # For general GPS and mapping, 5-6 decimal places (e.g., 34.052235)
            return round(float(parts[0]), 6), round(float(parts[1]), 6)
        except ValueError:
            return None

    @property
    def latitude(self) -> float | None:
        coordinates = self.coordinates
        return coordinates[0] if coordinates else None

    @property
    def longitude(self) -> float | None:
        coordinates = self.coordinates
        return coordinates[1] if coordinates else None

    def to_payload(self) -> dict:
        """JSON-compatible dict of the response, without empty fields."""
        return self.model_dump(mode="json", exclude_none=True)


class LookupResult(BaseModel):
    """Outcome of a pipeline run: the data and where it came from."""

    data: IPInfoData
    from_cache: bool = False
