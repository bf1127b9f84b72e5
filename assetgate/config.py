"""
Configuration module for the asset gateway.

Loads all configuration from environment variables with sensible defaults.
"""

import logging
import os

from .errors import ConfigError

logger = logging.getLogger(__name__)

GATEWAY_MODES = ("index", "metadata")


class Config:
    """
    Gateway configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    Required values are checked by validate(), which the bootstrap calls before
    anything touches the backend.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            HOST: Server bind address. Default: 0.0.0.0
            PORT: Server bind port, ":8080" is accepted too. Default: 8080
            PROJECT: Backend project. Required
            REPOSITORY: Backend repository. Required
            REGION: Backend region. Default: us-central1
            CREDENTIAL_PATH: Secret file used to log in to the registry.
                Falls back to GOOGLE_APPLICATION_CREDENTIALS. Required
            CREDENTIAL_USER: Principal sent with the secret. Default: _json_key
            AUTHS: Comma separated principal:secret pairs for the metadata gateway
            GATEWAY_MODE: "index" or "metadata". Default: index
            SHUTDOWN_GRACE_PERIOD: Seconds in-flight requests get on shutdown. Default: 15
            READ_TIMEOUT: Connection socket timeout in seconds. Default: 5
            MAX_ASSET_NAME_LENGTH: Maximum asset name length. Default: 255
            MAX_TAG_LENGTH: Maximum tag length. Default: 128
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = os.getenv("PORT", "8080")
        self.GATEWAY_MODE = os.getenv("GATEWAY_MODE", "index")
        self.SHUTDOWN_GRACE_PERIOD = os.getenv("SHUTDOWN_GRACE_PERIOD", "15")  # seconds
        self.READ_TIMEOUT = os.getenv("READ_TIMEOUT", "5")  # seconds

        # Backend coordinates
        self.PROJECT = os.getenv("PROJECT", "")
        self.REPOSITORY = os.getenv("REPOSITORY", "")
        self.REGION = os.getenv("REGION", "us-central1")

        # Credentials
        self.CREDENTIAL_PATH = os.getenv("CREDENTIAL_PATH") or os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")
        self.CREDENTIAL_USER = os.getenv("CREDENTIAL_USER", "_json_key")
        self.AUTHS = os.getenv("AUTHS", "")

        # Validation limits
        self.MAX_ASSET_NAME_LENGTH = int(os.getenv("MAX_ASSET_NAME_LENGTH", "255"))
        self.MAX_TAG_LENGTH = int(os.getenv("MAX_TAG_LENGTH", "128"))

    def validate(self) -> None:
        """
        Check required settings and normalize numeric ones.

        Raises:
            ConfigError: on the first missing or malformed setting
        """
        if not self.PROJECT:
            raise ConfigError("missing project")
        if not self.REPOSITORY:
            raise ConfigError("missing repository")
        if not self.CREDENTIAL_PATH:
            raise ConfigError("missing credential")
        if self.GATEWAY_MODE not in GATEWAY_MODES:
            raise ConfigError(f"unknown gateway mode: {self.GATEWAY_MODE}")

        self.PORT = self._as_number("PORT", str(self.PORT).lstrip(":"), int)
        self.SHUTDOWN_GRACE_PERIOD = self._as_number("SHUTDOWN_GRACE_PERIOD", self.SHUTDOWN_GRACE_PERIOD, float)
        self.READ_TIMEOUT = self._as_number("READ_TIMEOUT", self.READ_TIMEOUT, float)

    @staticmethod
    def _as_number(name, value, kind):
        try:
            return kind(value)
        except (TypeError, ValueError):
            raise ConfigError(f"invalid {name}: {value!r}") from None

    def repository_path(self) -> str:
        """Fully-qualified backend repository resource path."""
        return f"projects/{self.PROJECT}/locations/{self.REGION}/repositories/{self.REPOSITORY}"

    def allowed_auths(self) -> dict[str, str]:
        """
        Parse AUTHS into a principal -> secret mapping.

        Entries without a ':' separator are skipped with a warning.

        Example:
            >>> AUTHS="ci:s3cret,ops:hunter2"
            {'ci': 's3cret', 'ops': 'hunter2'}
        """
        auths = {}
        for entry in self.AUTHS.split(","):
            entry = entry.strip()
            if not entry:
                continue
            principal, sep, secret = entry.partition(":")
            if not sep or not principal:
                logger.warning("Ignoring malformed AUTHS entry")
                continue
            auths[principal] = secret
        return auths

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"HOST={self.HOST}, "
            f"PORT={self.PORT}, "
            f"GATEWAY_MODE={self.GATEWAY_MODE}, "
            f"PROJECT={self.PROJECT}, "
            f"REGION={self.REGION}, "
            f"REPOSITORY={self.REPOSITORY})"
        )


# Global config instance
config = Config()
