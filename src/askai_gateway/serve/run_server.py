"""Launch the gateway under uvicorn using the environment configuration."""
from __future__ import annotations
import logging

import uvicorn

from askai_gateway.common.config import GatewayConfig
from askai_gateway.common.logging_setup import setup_logging
from askai_gateway.serve.fastapi_app import create_app

LOGGER = logging.getLogger("askai.gateway.server")

def main() -> None:
    config = GatewayConfig.from_env()
    setup_logging(config.log_level)
    LOGGER.info("Service starting on %s:%s", config.host, config.port)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)

if __name__ == "__main__":
    main()
