"""
ApiServer class for CLI control of the FastAPI application.
"""
import logging
import os
from typing import Optional

import uvicorn

from settings import PORT, LOG_LEVEL, BIND_ADDRESS
from .app import app

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure the root logger once for the whole process

    Debug mode logs everything and also appends to bridge_debug.log.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else getattr(logging, str(LOG_LEVEL).upper(), logging.INFO))

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if debug:
        log_file = os.path.abspath('bridge_debug.log')
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')  # 'a' to append
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.info(f"Debug logging enabled - appending to {log_file}")


class ApiServer:
    """Host API server wrapper for CLI control"""

    def __init__(self, debug: bool = False, bind_address: Optional[str] = None):
        self.server = None
        self.config = None
        self.debug = debug
        self.bind_address = bind_address or BIND_ADDRESS

    def run(self):
        """Run the API server (blocking)"""
        logger.info(f"Starting HubSpot Message Bridge on http://{self.bind_address}:{PORT}")
        logger.info("Available endpoints: /api/v1/hubspot/*, /health")
        self.config = uvicorn.Config(
            app,
            host=self.bind_address,
            port=PORT,
            log_level="debug" if self.debug else LOG_LEVEL,
            access_log=False  # Request timing is logged by the middleware
        )
        self.server = uvicorn.Server(self.config)
        self.server.run()

    def stop(self):
        """Stop the API server"""
        if self.server:
            self.server.should_exit = True
