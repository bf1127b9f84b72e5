"""
Input validation module for the asset gateway.

Provides validation functions for asset names, tags and digests, plus the
URL converters that keep digest- and tag-addressed routes apart.
"""

import hashlib
import logging
import re

from flask import abort
from werkzeug.routing import BaseConverter, PathConverter

from .config import config

logger = logging.getLogger(__name__)

ASSET_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+$')
TAG_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+$')
# OCI digest grammar: algorithm ":" encoded
DIGEST_PATTERN = re.compile(r'^[a-z0-9]+(?:[+._-][a-z0-9]+)*:[a-zA-Z0-9=_-]+$')


class AssetNameConverter(BaseConverter):
    """
    Asset name up to the first '@' or ':'.

    The backend escapes nested names (org/chart is stored as org%2Fchart) and
    the WSGI layer decodes %2F before routing, so '/' is matched here and
    escaped again for the index lookup.
    """

    regex = r"[^@:]+"
    part_isolating = False

    def to_python(self, value):
        return value.replace("/", "%2F")


class TagConverter(BaseConverter):
    regex = r"[^/@:]+"


class DigestConverter(BaseConverter):
    """Digest segment; keeps its 'algorithm:' prefix."""

    regex = r"[^/@]+"


class ResourceSegmentConverter(PathConverter):
    """Raw backend image segment, with decoded '/' escaped again."""

    def to_python(self, value):
        return value.replace("/", "%2F")


URL_CONVERTERS = {
    "asset_name": AssetNameConverter,
    "tag": TagConverter,
    "digest": DigestConverter,
    "resource": ResourceSegmentConverter,
}


def compute_sha256(data: bytes) -> str:
    """
    Compute SHA256 digest in OCI format.

    Args:
        data: Bytes to hash

    Returns:
        String in format "sha256:<64 hex chars>"

    Example:
        >>> compute_sha256(b"hello")
        'sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    h = hashlib.sha256()
    h.update(data)
    return "sha256:" + h.hexdigest()


def validate_asset_name(name: str) -> None:
    """
    Validate a requested asset name.

    Args:
        name: Short asset name as it appears before '@' or ':' in the request path

    Raises:
        HTTPException: 400 Bad Request if name is invalid

    Validation Rules:
        - Must be 1-{MAX_ASSET_NAME_LENGTH} characters (configurable)
        - Only alphanumeric characters, dots (.), hyphens (-), underscores (_),
          plus (+) and percent (%) for escaped backend names
    """
    if not name or len(name) > config.MAX_ASSET_NAME_LENGTH:
        logger.warning(f"Invalid asset name length: {len(name)}")
        abort(400, f"Invalid asset name: must be 1-{config.MAX_ASSET_NAME_LENGTH} characters")

    if not ASSET_NAME_PATTERN.match(name):
        logger.warning(f"Invalid asset name format: {name}")
        abort(400, "Invalid asset name: only alphanumeric, dots, hyphens, underscores, plus and percent allowed")

    logger.debug(f"Asset name validated: {name}")


def validate_tag(tag: str) -> None:
    """
    Validate an asset tag.

    Args:
        tag: Tag name to validate

    Raises:
        HTTPException: 400 Bad Request if tag is invalid

    Validation Rules:
        - Must be 1-{MAX_TAG_LENGTH} characters (configurable)
        - Only alphanumeric characters, dots (.), hyphens (-), and underscores (_)
    """
    if not tag or len(tag) > config.MAX_TAG_LENGTH:
        logger.warning(f"Invalid tag length: {len(tag)}")
        abort(400, f"Invalid tag: must be 1-{config.MAX_TAG_LENGTH} characters")

    if not TAG_PATTERN.match(tag):
        logger.warning(f"Invalid tag format: {tag}")
        abort(400, "Invalid tag: only alphanumeric, dots, hyphens, and underscores allowed")

    logger.debug(f"Tag validated: {tag}")


def validate_digest(digest: str) -> None:
    """
    Validate digest format.

    Raises:
        HTTPException: 400 Bad Request if digest is invalid

    Format:
        algorithm:encoded, e.g. "sha256:abc123..."
    """
    if not digest or not DIGEST_PATTERN.match(digest):
        logger.warning(f"Invalid digest format: {digest}")
        abort(400, "Invalid digest: must be <algorithm>:<encoded>")

    logger.debug(f"Digest validated: {digest}")
