# =============================================================================
# FILE: src/expressflow/main.py
# Main entry point for the ExpressFlow quote workflow
# =============================================================================

import logging
import sys
from dataclasses import dataclass
from typing import Optional

import structlog

from expressflow.config import Settings, settings as default_settings
from expressflow.exceptions import ExpressFlowError
from expressflow.seed_data import initial_quotes
from expressflow.services.analytics import dashboard_counts
from expressflow.services.auth import AuthService
from expressflow.services.persistence import build_persistence
from expressflow.services.redis_client import close_redis_client
from expressflow.services.store import QuoteStore, UserDirectory
from expressflow.services.workflow import QuoteWorkflow

logger = structlog.get_logger()


def configure_logging(config: Optional[Settings] = None) -> None:
    config = config or default_settings
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if config.LOG_FORMAT == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(message)s",
    )


@dataclass
class Application:
    quotes: QuoteStore
    users: UserDirectory
    workflow: QuoteWorkflow
    auth: AuthService


def build_application(config: Optional[Settings] = None) -> Application:
    """Wire the stores to their persistence adapters and load saved state."""
    config = config or default_settings

    quotes = QuoteStore(build_persistence(config.QUOTES_KEY, config))
    users = UserDirectory(build_persistence(config.USERS_KEY, config))
    quotes.load()
    users.load()

    if config.SEED_DEMO_DATA and len(quotes) == 0:
        for quote in initial_quotes():
            quotes.add(quote)
        logger.info("Seeded demo data", quotes=len(quotes))

    return Application(
        quotes=quotes,
        users=users,
        workflow=QuoteWorkflow(quotes, config=config),
        auth=AuthService(users, config=config),
    )


def main(config: Optional[Settings] = None) -> int:
    """Main entry point."""
    config = config or default_settings
    configure_logging(config)

    logger.info(
        "Starting ExpressFlow",
        service=config.SERVICE_NAME,
        version=config.SERVICE_VERSION,
        environment=config.ENVIRONMENT,
        storage=config.STORAGE_BACKEND,
    )

    try:
        app = build_application(config)
        counts = dashboard_counts(app.quotes.all(), threshold_hours=config.SLA_THRESHOLD_HOURS)
        logger.info("Dashboard", collaborators=len(app.users), **counts.model_dump())
    except (ExpressFlowError, ValueError) as e:
        logger.error("Fatal error", error=str(e))
        return 1
    finally:
        if config.STORAGE_BACKEND.lower() == "redis":
            close_redis_client()

    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
