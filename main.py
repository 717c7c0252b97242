"""
Main entrypoint: PoisonGuard FastAPI server.

Loads settings from env (.env supported), builds the engine config from
defaults plus POISONGUARD_* overrides, and serves the API in the main thread.
On SIGINT/SIGTERM uvicorn shuts down and the process exits.

Env: API_HOST, API_PORT, LOG_LEVEL, LOG_FORMAT, ANALYSIS_MAX_WORKERS, ANALYSIS_TIMEOUT_SEC, POISONGUARD_*.

Equivalent: uvicorn backend_poisonguard.api_server.app:app --host 0.0.0.0 --port 8000
"""

import sys

# Configure structured JSON logging before other imports that may log
from backend_poisonguard.poisonguard_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Validate config, then run the FastAPI server in the main thread."""
    from backend_poisonguard.config import get_settings, load_engine_config
    from backend_poisonguard.core.exceptions import ConfigError

    try:
        settings = get_settings()
        config = load_engine_config()
    except ConfigError as e:
        logger.error("main_config_error", error=e.to_dict())
        sys.exit(1)

    logger.info(
        "main_config_loaded",
        rule_c_policy=config.rule_c_policy.value,
        bands=[b.to_dict() for b in config.bands()],
        max_workers=settings.analysis_max_workers,
    )

    from backend_poisonguard.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
