"""Launch the gateway with uvicorn, configured from the environment."""
from __future__ import annotations
import logging

import uvicorn

from inference_gateway.common.config import GatewayConfig
from inference_gateway.common.logging_setup import setup_logging
from inference_gateway.serve.app import create_app

LOGGER = logging.getLogger("inference_gateway.server")


def main() -> None:
    config = GatewayConfig.from_env()
    setup_logging(config.log_level)
    LOGGER.info(
        "Starting inference gateway on %s:%s (engine=%s, default model=%s)",
        config.host,
        config.port,
        config.engine_backend,
        config.default_model_id,
    )
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
