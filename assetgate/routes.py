"""
Gateway endpoints.

Two resolution strategies, each a Flask blueprint mounted on the shared
gateway app:
    - index_blueprint: digest- and tag-addressed downloads through the AssetIndex
    - metadata_blueprint: index-free pass-through to backend metadata
"""

import hmac
import logging

from flask import Blueprint, abort, jsonify, request

from .errors import AssetNotFound
from .metadata import is_favicon_probe
from .validation import validate_asset_name, validate_digest, validate_tag

logger = logging.getLogger(__name__)


# -------------------------------
# Index-backed gateway
# -------------------------------


def index_blueprint(index, proxy) -> Blueprint:
    """
    Download endpoints resolved against a prebuilt index.

    Args:
        index: The AssetIndex built at startup, shared read-only
        proxy: PullProxy used to authenticate and pull per request

    Endpoints:
        GET /<name>@<digest> - exact content lookup
        GET /<name>:<tag> - first asset in listing order carrying the tag

    Responses:
        200: chart bytes, Content-Disposition: attachment; filename={name}-{version}.tgz
        400: invalid name, digest or tag
        404: nothing in the index matches
        500: credential, login or pull failure
    """
    bp = Blueprint("index_gateway", __name__)

    def _serve(asset):
        return proxy.stream(proxy.fetch(asset))

    @bp.route("/<asset_name:name>@<digest:digest>")
    def get_by_digest(name, digest):
        validate_asset_name(name)
        validate_digest(digest)
        logger.info(f"Asset requested: name='{name}', digest='{digest}'")

        try:
            asset = index.lookup_by_digest(name, digest)
        except AssetNotFound:
            logger.warning(f"Asset not found: name='{name}', digest='{digest}'")
            abort(404, f"Asset '{name}@{digest}' not found")

        return _serve(asset)

    @bp.route("/<asset_name:name>:<tag:tag>")
    def get_by_tag(name, tag):
        validate_asset_name(name)
        validate_tag(tag)
        logger.info(f"Asset requested: name='{name}', tag='{tag}'")

        try:
            asset = index.lookup_by_tag(name, tag)
        except AssetNotFound:
            logger.warning(f"Asset not found: name='{name}', tag='{tag}'")
            abort(404, f"Asset '{name}:{tag}' not found")

        logger.debug(f"Tag '{tag}' resolved to {asset.name}@{asset.digest}")
        return _serve(asset)

    return bp


# -------------------------------
# Metadata gateway
# -------------------------------


def _authorized(auths: dict) -> bool:
    creds = request.authorization
    if creds is None or creds.username is None:
        return False
    expected = auths.get(creds.username)
    if expected is None:
        return False
    return hmac.compare_digest(expected.encode(), (creds.password or "").encode())


def metadata_blueprint(proxy, auths=None) -> Blueprint:
    """
    Pass-through metadata endpoint.

    Args:
        proxy: MetadataProxy for backend lookups
        auths: principal -> secret allow-list; empty or None leaves the
            endpoint open

    Endpoints:
        GET /<asset> - backend metadata for that image as JSON

    Responses:
        200: JSON document
        401: allow-list configured and the request's Basic credentials don't match
        404: favicon probe, answered without touching the backend
        500: backend lookup failed
    """
    bp = Blueprint("metadata_gateway", __name__)
    auths = dict(auths or {})

    @bp.before_request
    def check_allow_list():
        if auths and not _authorized(auths):
            logger.warning(f"Rejected unauthorized metadata request: {request.path}")
            resp = jsonify(error="unauthorized")
            resp.status_code = 401
            resp.headers["WWW-Authenticate"] = 'Basic realm="assetgate"'
            return resp
        return None

    @bp.route("/<resource:asset>")
    def get_metadata(asset):
        if is_favicon_probe(asset):
            abort(404)
        return jsonify(proxy.describe(asset))

    return bp
