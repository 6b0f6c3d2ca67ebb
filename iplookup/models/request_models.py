from enum import Enum
from ipaddress import ip_address

from pydantic import BaseModel, Field, field_validator


class OutputFormat(str, Enum):
    """Supported renderings of a lookup result."""

    human = "human"
    json = "json"
    compact = "compact"
    table = "table"


class IPLookupRequest(BaseModel):
    """Input for a single lookup.

    If `ip` is provided, that explicit address is looked up.
    If `ip` is omitted, blank or null, the caller's own public address is used.
    """

    ip: str | None = Field(
        default=None,
        description="IPv4 or IPv6 address to look up. If omitted, the caller's IP is used.",
        examples=["8.8.8.8", "2001:4860:4860::8888"],
    )
    refresh: bool = Field(
        default=False,
        description="Ignore any cached entry and fetch from the provider.",
    )
    use_cache: bool = Field(
        default=True,
        description="Read from and write to the local cache.",
    )

    @field_validator("ip", mode="before")
    @classmethod
    def _validate_ip(cls, value: str | None) -> str | None:
        """Validate that ip is either empty/None or a valid IP address (IPv4 or IPv6).

        - None or blank string -> treated as None (self lookup, no error).
        - Non-blank -> must be a valid IP literal and is normalized to its
          canonical text form, so cache keys do not depend on spelling.
        """
        if value is None:
            return None

        value_str = str(value).strip()
        if not value_str:
            return None

        try:
            return str(ip_address(value_str))
        except ValueError as exc:
            raise ValueError("ip must be a valid IPv4 or IPv6 address") from exc

    @property
    def is_self_lookup(self) -> bool:
        return self.ip is None
