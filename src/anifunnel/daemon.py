"""uvicorn runner for the anifunnel HTTP server."""

import sys
from typing import Optional

import uvicorn

from anifunnel.api.app import create_app
from anifunnel.config import Config
from anifunnel.core.database import AnifunnelDatabase
from anifunnel.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class DaemonOrchestrator:
    """Owns the database, the FastAPI app and the uvicorn server."""

    def __init__(self, config: Config, database: Optional[AnifunnelDatabase] = None):
        """Initialize daemon orchestrator.

        Args:
            config: Application configuration
            database: Database to use instead of opening the configured path
        """
        self.config = config
        self.database = database or AnifunnelDatabase(config.database.path)
        self.app = create_app(config, database=self.database)
        self.server = uvicorn.Server(
            uvicorn.Config(
                self.app,
                host=config.api.host,
                port=config.api.port,
                log_level=config.logging.level,
                access_log=False,  # webhook requests are logged by middleware
            )
        )

    def run(self):
        """Serve until SIGINT/SIGTERM, which uvicorn handles."""
        logger.info(
            "Starting daemon",
            host=self.config.api.host,
            port=self.config.api.port,
            database=str(self.database.db_path),
        )

        try:
            self.server.run()
        except KeyboardInterrupt:
            logger.info("Daemon interrupted by user")
        except Exception as e:
            logger.exception("Daemon error", error=str(e))
            sys.exit(1)
        finally:
            logger.info("Daemon stopped")


def start_daemon(config: Config):
    """Configure logging and run the daemon in the foreground.

    Args:
        config: Application configuration
    """
    setup_logging(config.logging)

    DaemonOrchestrator(config).run()
