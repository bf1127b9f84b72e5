"""
Pull proxy for the asset gateway.

Per request: read the credential secret, log in to the asset's registry,
fetch the chart and hand its bytes back as a download. Nothing is cached
between requests.
"""

import logging
from dataclasses import dataclass

from flask import Response
from oras.provider import Registry

from .chart import HELM_CHART_CONTENT_MEDIA_TYPE, ChartMetadata, load_chart_metadata
from .errors import AuthenticationFailed, CredentialUnavailable, PullFailed
from .validation import compute_sha256

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PulledArtifact:
    data: bytes
    metadata: ChartMetadata
    media_type: str


def acquire_credential(secret_path: str, principal: str = "_json_key") -> tuple[str, str]:
    """
    Read the secret file in full and pair it with the principal.

    Raises:
        CredentialUnavailable: the file is missing, unreadable or not text
    """
    try:
        with open(secret_path, "r", encoding="utf-8") as f:
            secret = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Cannot read credential {secret_path}: {e}")
        raise CredentialUnavailable(f"credential unavailable: {e}") from e
    return principal, secret


def registry_host(uri: str) -> str:
    """
    Registry hostname of an asset URI.

    Example:
        >>> registry_host("us-central1-docker.pkg.dev/p/r/chart@sha256:1")
        'us-central1-docker.pkg.dev'
    """
    return uri.split("/", 1)[0]


def _chart_layer(manifest: dict) -> dict:
    layers = manifest.get("layers") or []
    for layer in layers:
        if layer.get("mediaType") == HELM_CHART_CONTENT_MEDIA_TYPE:
            return layer
    if len(layers) == 1:
        return layers[0]
    raise PullFailed(f"manifest has no chart layer ({len(layers)} layers)")


class PullProxy:
    """
    Authenticates against the backend and pulls assets on behalf of clients.

    Args:
        credential_path: File holding the registry secret
        principal: User name sent alongside the secret
        client_factory: Builds a fresh registry client per request
    """

    def __init__(self, credential_path: str, principal: str = "_json_key", client_factory=Registry):
        self.credential_path = credential_path
        self.principal = principal
        self.client_factory = client_factory

    def authenticate(self, uri: str, principal: str, secret: str):
        """
        Log in to the registry serving `uri` and return the logged-in client.

        Raises:
            AuthenticationFailed: the registry rejected the credentials or
                could not be reached
        """
        host = registry_host(uri)
        client = self.client_factory(hostname=host)
        try:
            client.login(username=principal, password=secret, hostname=host)
        except Exception as e:
            logger.error(f"Login to {host} failed: {e}")
            raise AuthenticationFailed(f"authentication to {host} failed: {e}") from e
        logger.debug(f"Logged in to {host} as {principal}")
        return client

    def pull(self, client, uri: str) -> PulledArtifact:
        """
        Fetch the chart content and its metadata in one go.

        Raises:
            PullFailed: manifest or blob fetch failed, the content does not
                match its digest, or the chart metadata is unreadable
        """
        try:
            manifest = client.get_manifest(container=uri)
            layer = _chart_layer(manifest)
            response = client.get_blob(container=uri, digest=layer["digest"])
            response.raise_for_status()
            data = response.content
        except PullFailed:
            raise
        except Exception as e:
            logger.error(f"Pull of {uri} failed: {e}")
            raise PullFailed(f"pull of {uri} failed: {e}") from e

        if layer["digest"].startswith("sha256:") and compute_sha256(data) != layer["digest"]:
            logger.error(f"Digest mismatch for {uri}: expected {layer['digest']}")
            raise PullFailed(f"content of {uri} does not match {layer['digest']}")

        metadata = load_chart_metadata(data)
        logger.info(f"Pulled {uri}: {metadata.name}-{metadata.version}, {len(data)} bytes")
        return PulledArtifact(data=data, metadata=metadata, media_type=layer.get("mediaType", HELM_CHART_CONTENT_MEDIA_TYPE))

    def fetch(self, asset) -> PulledArtifact:
        """Credential read, login and pull for one indexed asset."""
        principal, secret = acquire_credential(self.credential_path, self.principal)
        client = self.authenticate(asset.uri, principal, secret)
        return self.pull(client, asset.uri)

    @staticmethod
    def stream(artifact: PulledArtifact) -> Response:
        """Whole-object download response with the chart's file name."""
        metadata = artifact.metadata
        resp = Response(artifact.data, status=200, mimetype=artifact.media_type)
        resp.headers["Content-Disposition"] = f"attachment; filename={metadata.name}-{metadata.version}.tgz"
        return resp
