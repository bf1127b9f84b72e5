"""
Asset index for the gateway.

The index is built once, before the listener binds, from a full enumeration
of the backend repository. It exposes lookups only, so request handlers can
share one instance without locking.
"""

import logging
from dataclasses import dataclass, field

from google.api_core import exceptions as api_exceptions

from .errors import AssetNotFound, IndexBuildFailed, MalformedResourceName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Asset:
    """One artifact listed by the backend repository."""

    name: str
    digest: str
    raw_resource_name: str
    uri: str
    media_type: str = ""
    tags: tuple[str, ...] = field(default_factory=tuple)


def parse_resource_name(raw: str) -> tuple[str, str]:
    """
    Split a backend resource identifier into (name, digest).

    The trailing path segment must contain exactly one '@'; the part before it
    is the name and the part after it the digest.

    Raises:
        MalformedResourceName: separator absent or duplicated, or fewer than
            two path segments

    Examples:
        >>> parse_resource_name("projects/p/locations/l/repositories/r/dockerImages/chart@sha256:1")
        ('chart', 'sha256:1')
    """
    parts = raw.split("/")
    if len(parts) < 2:
        raise MalformedResourceName(raw, "expected at least two path segments")

    name_parts = parts[-1].split("@")
    if len(name_parts) != 2:
        raise MalformedResourceName(raw, "expected exactly one '@' in the last segment")

    name, digest = name_parts
    return name, digest


class AssetIndex:
    """
    Immutable, ordered collection of assets.

    Order is the backend listing order and only matters for tag lookups, where
    the first matching asset wins.
    """

    __slots__ = ("_assets", "_by_digest")

    def __init__(self, assets=()):
        ordered = []
        by_digest = {}
        for asset in assets:
            key = (asset.name, asset.digest)
            if key in by_digest:
                logger.warning(f"Duplicate asset {asset.name}@{asset.digest} in listing, keeping first")
                continue
            by_digest[key] = asset
            ordered.append(asset)
        self._assets = tuple(ordered)
        self._by_digest = by_digest

    @property
    def assets(self) -> tuple[Asset, ...]:
        return self._assets

    def __len__(self):
        return len(self._assets)

    def __iter__(self):
        return iter(self._assets)

    def lookup_by_digest(self, name: str, digest: str) -> Asset:
        """
        Exact match on name and digest.

        Raises:
            AssetNotFound: no asset with this name and digest
        """
        try:
            return self._by_digest[(name, digest)]
        except KeyError:
            raise AssetNotFound(name, digest) from None

    def lookup_by_tag(self, name: str, tag: str) -> Asset:
        """
        First asset in listing order named `name` whose tags include `tag`.

        Raises:
            AssetNotFound: no asset with this name carries the tag
        """
        for asset in self._assets:
            if asset.name == name and tag in asset.tags:
                return asset
        raise AssetNotFound(name, tag)


def build_index(client, parent: str) -> AssetIndex:
    """
    Enumerate every image in the backend repository and index it.

    Args:
        client: Artifact Registry client (anything with list_docker_images)
        parent: Repository path, projects/{p}/locations/{l}/repositories/{r}

    Returns:
        The populated AssetIndex

    Raises:
        IndexBuildFailed: listing or pagination failed
        MalformedResourceName: a listed identifier could not be parsed; the
            build is aborted so no partial index is ever served
    """
    logger.info(f"Building asset index from {parent}")

    assets = []
    try:
        for image in client.list_docker_images(request={"parent": parent}):
            name, digest = parse_resource_name(image.name)
            assets.append(Asset(
                name=name,
                digest=digest,
                raw_resource_name=image.name,
                uri=image.uri,
                media_type=image.media_type,
                tags=tuple(image.tags),
            ))
            logger.debug(f"Indexed {name}@{digest} tags={list(image.tags)}")
    except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as e:
        logger.error(f"Listing {parent} failed: {e}")
        raise IndexBuildFailed(f"failed to list {parent}: {e}") from e

    index = AssetIndex(assets)
    logger.info(f"Asset index ready: {len(index)} assets")
    return index
