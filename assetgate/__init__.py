"""
HTTP gateway for charts and images held in an Artifact Registry repository.

At startup the gateway lists the whole backend repository once and builds an
immutable index of its assets. Clients then download an asset by name plus
content digest or by name plus tag; each download logs in to the backend with
the configured credential and streams the chart archive back.

Features:
    - Digest-addressed downloads: GET /<name>@<digest>
    - Tag-addressed downloads: GET /<name>:<tag>, first asset in listing order wins
    - Optional metadata gateway passing lookups straight through to the backend
    - Per-request failures reported as HTTP errors, never process exits
    - Graceful shutdown with a bounded grace period
    - Configurable via environment variables
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config
from .errors import (
    GatewayError,
    ConfigError,
    IndexBuildFailed,
    MalformedResourceName,
    AssetNotFound,
    CredentialUnavailable,
    AuthenticationFailed,
    PullFailed,
    MetadataUnavailable,
)
from .index import Asset, AssetIndex, build_index, parse_resource_name
from .pull import PullProxy, acquire_credential
from .metadata import MetadataProxy
from .gateway import create_app, build_gateway
from .server import GatewayServer

__all__ = [
    "Config",
    "GatewayError",
    "ConfigError",
    "IndexBuildFailed",
    "MalformedResourceName",
    "AssetNotFound",
    "CredentialUnavailable",
    "AuthenticationFailed",
    "PullFailed",
    "MetadataUnavailable",
    "Asset",
    "AssetIndex",
    "build_index",
    "parse_resource_name",
    "PullProxy",
    "acquire_credential",
    "MetadataProxy",
    "create_app",
    "build_gateway",
    "GatewayServer",
]
