class AppError(Exception):
    """Base application error for the iplookup CLI."""


class ConfigError(AppError):
    """Raised when the configuration file is malformed or an edit is rejected."""


class DependencyError(AppError):
    """Raised when something the tool relies on at runtime is unavailable (e.g. a web browser)."""


class UnknownFieldError(AppError):
    """Raised when a requested response field is not present."""


class IpProviderError(AppError):
    """Base error for IP lookup provider failures."""


class InvalidIpError(IpProviderError):
    """Raised when the supplied IP address is syntactically invalid."""


class ReservedIpError(IpProviderError):
    """Raised when the supplied IP address is a bogon (reserved/private, e.g. 127.0.0.1, 192.168.x.x)."""


class IpNotFoundError(IpProviderError):
    """Raised when no information is found for the IP."""


class UpstreamServiceError(IpProviderError):
    """Raised when the upstream IP provider fails or returns an unusable response."""
