"""
Shared Flask application for both gateway variants.

The resolution strategy (index-backed or metadata pass-through) is supplied
as a blueprint; everything else, health check and error reporting included,
is common.
"""

import logging

from flask import Flask, Response
from google.cloud import artifactregistry_v1

from .errors import GatewayError
from .index import build_index
from .metadata import MetadataProxy
from .pull import PullProxy
from .routes import index_blueprint, metadata_blueprint
from .validation import URL_CONVERTERS

logger = logging.getLogger(__name__)


def create_app(blueprint) -> Flask:
    """
    Build the gateway app around one resolution strategy.

    Args:
        blueprint: Routes of the strategy to serve

    Endpoints:
        GET /health - liveness check, body "ok"
    """
    app = Flask(__name__)
    app.url_map.converters.update(URL_CONVERTERS)

    @app.route("/health")
    def health():
        return Response("ok", status=200, mimetype="text/plain")

    @app.errorhandler(GatewayError)
    def gateway_error(e):
        # Confined to this request, the process keeps serving
        logger.error(f"Request failed with {type(e).__name__}: {e}")
        return Response(str(e), status=e.status_code, mimetype="text/plain")

    app.register_blueprint(blueprint)
    return app


def build_gateway(config, listing_client=None, registry_factory=None) -> Flask:
    """
    Assemble the gateway selected by config.GATEWAY_MODE.

    For the index gateway the asset index is built here, synchronously, so the
    caller only binds a listener once it exists.

    Args:
        config: Validated Config
        listing_client: Artifact Registry client; a real one is created when omitted
        registry_factory: Registry client factory for pulls; ORAS when omitted

    Raises:
        IndexBuildFailed, MalformedResourceName: the index could not be built
    """
    if listing_client is None:
        listing_client = artifactregistry_v1.ArtifactRegistryClient()

    parent = config.repository_path()

    if config.GATEWAY_MODE == "metadata":
        auths = config.allowed_auths()
        if auths:
            logger.info(f"Metadata gateway allow-list enabled for {len(auths)} principals")
        else:
            logger.warning("AUTHS is empty, metadata gateway is open")
        return create_app(metadata_blueprint(MetadataProxy(listing_client, parent), auths))

    index = build_index(listing_client, parent)
    proxy_kwargs = {"client_factory": registry_factory} if registry_factory else {}
    proxy = PullProxy(config.CREDENTIAL_PATH, config.CREDENTIAL_USER, **proxy_kwargs)
    return create_app(index_blueprint(index, proxy))
