"""
Error types for the asset gateway.

Every per-request failure is a GatewayError carrying the HTTP status it is
reported with. Startup failures (ConfigError, IndexBuildFailed,
MalformedResourceName) are fatal and never reach a request handler.
"""


class GatewayError(Exception):
    """Base class for gateway failures."""

    status_code = 500


class ConfigError(GatewayError):
    """Required configuration is missing or malformed."""


class IndexBuildFailed(GatewayError):
    """Enumerating the backend repository failed."""


class MalformedResourceName(GatewayError):
    """A backend resource identifier is not of the form .../name@digest."""

    def __init__(self, raw: str, reason: str):
        super().__init__(f"malformed resource name {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class AssetNotFound(GatewayError):
    """No indexed asset matches the requested name and digest or tag."""

    status_code = 404

    def __init__(self, name: str, reference: str):
        super().__init__(f"asset not found: {name} ({reference})")
        self.name = name
        self.reference = reference


class CredentialUnavailable(GatewayError):
    """The credential secret file could not be read."""


class AuthenticationFailed(GatewayError):
    """The backend registry rejected the login handshake."""


class PullFailed(GatewayError):
    """The asset is indexed but fetching it from the backend failed."""


class MetadataUnavailable(GatewayError):
    """The backend metadata lookup failed or returned nothing usable."""
