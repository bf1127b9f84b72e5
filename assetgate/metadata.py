"""
Metadata proxy for the asset gateway.

Index-free lookups: a request path segment is turned straight into a backend
resource path and the backend's description of it is returned as JSON.
"""

import logging

from google.api_core import exceptions as api_exceptions
from google.cloud import artifactregistry_v1

from .errors import MetadataUnavailable

logger = logging.getLogger(__name__)


def is_favicon_probe(segment: str) -> bool:
    """True for browser icon requests such as favicon.ico."""
    return segment.lower().endswith(".ico")


class MetadataProxy:
    """
    Pass-through lookups against the backend repository.

    Args:
        client: Artifact Registry client (anything with get_docker_image)
        parent: Repository path, projects/{p}/locations/{l}/repositories/{r}
    """

    def __init__(self, client, parent: str):
        self.client = client
        self.parent = parent

    def resource_path(self, segment: str) -> str:
        return f"{self.parent}/dockerImages/{segment}"

    def describe(self, segment: str) -> dict:
        """
        Fetch backend metadata for one path segment.

        Raises:
            MetadataUnavailable: the lookup failed or the result could not be converted
        """
        path = self.resource_path(segment)
        logger.info(f"Metadata requested: {path}")
        try:
            image = self.client.get_docker_image(name=path)
        except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as e:
            logger.error(f"Metadata lookup for {path} failed: {e}")
            raise MetadataUnavailable(f"metadata lookup for {segment} failed: {e}") from e

        try:
            return artifactregistry_v1.DockerImage.to_dict(image)
        except (TypeError, AttributeError) as e:
            raise MetadataUnavailable(f"unexpected metadata for {segment}: {e}") from e
