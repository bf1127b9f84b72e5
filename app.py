"""
Asset gateway for an Artifact Registry repository.

Serves charts and images from the configured repository by digest or tag, or,
in metadata mode, passes lookups straight through to the backend.

Architecture:
    1. Configuration is read from the environment and validated
    2. Index mode: the whole repository is listed and indexed (blocks startup)
    3. The listener binds only after the index exists
    4. GET /<name>@<digest> or /<name>:<tag> resolves against the index
    5. The gateway logs in to the asset's registry and pulls the chart
    6. The chart archive is returned as an attachment
    7. SIGINT/SIGTERM stop the listener; in-flight requests get a grace period

Endpoints:
    - GET /health - Liveness check
    - GET /<name>@<digest> - Download by digest (index mode)
    - GET /<name>:<tag> - Download by tag (index mode)
    - GET /<asset> - Backend metadata as JSON (metadata mode)

Environment Variables:
    LOG_LEVEL, HOST, PORT, PROJECT, REPOSITORY, REGION, CREDENTIAL_PATH,
    CREDENTIAL_USER, AUTHS, GATEWAY_MODE, SHUTDOWN_GRACE_PERIOD, READ_TIMEOUT,
    MAX_ASSET_NAME_LENGTH, MAX_TAG_LENGTH

Example:
    $ PROJECT=acme REPOSITORY=charts CREDENTIAL_PATH=key.json python app.py
    $ curl -OJ localhost:8080/nginx:latest
"""

import logging
import sys

from assetgate.config import config
from assetgate.errors import GatewayError
from assetgate.gateway import build_gateway
from assetgate.server import GatewayServer

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the gateway application."""
    try:
        config.validate()
        logger.info(f"Configuration: {config}")
        app = build_gateway(config)
    except GatewayError as e:
        logger.critical(f"Startup failed: {e}")
        sys.exit(1)

    server = GatewayServer(
        app,
        config.HOST,
        config.PORT,
        grace_period=config.SHUTDOWN_GRACE_PERIOD,
        read_timeout=config.READ_TIMEOUT,
    )
    logger.info(f"Starting {config.GATEWAY_MODE} gateway on {config.HOST}:{config.PORT}")
    server.serve_until_signalled()


if __name__ == "__main__":
    main()
