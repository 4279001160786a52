"""Entry point for running the AnarchyBay API server."""
import asyncio
import logging
import sys

import uvicorn

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""

    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 3000):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level="info"
        )
        self.server = uvicorn.Server(self.config)

    async def run(self):
        """Serve until uvicorn receives a shutdown signal."""
        await self.server.serve()


def load_config():
    """Load settings, exiting with status 1 when they are missing or invalid."""
    try:
        from config import settings_conf
    except Exception as e:
        logger.error(str(e))
        sys.exit(1)
    return settings_conf


async def main():
    settings = load_config()
    server = UvicornServer(port=settings['port'])

    logger.info(f"Starting API on port {settings['port']}")
    try:
        await server.run()
    finally:
        logger.info("Server stopped.")


if __name__ == "__main__":
    asyncio.run(main())
