import logging
import os
import sys

import uvicorn

from psexec_bridge.app import create_app
from psexec_bridge.config import BridgeConfig, ConfigError

LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("file_bridge_server")

# ============================================================================
# Configuration
# ============================================================================
try:
    config = BridgeConfig.from_env()
except ConfigError as e:
    logger.error("%s", e)
    sys.exit(1)

# ============================================================================
# App
# ============================================================================
app = create_app(config)

if __name__ == "__main__":
    logger.info("File server running on http://localhost:%d", config.port)
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_level=LOG_LEVEL)
