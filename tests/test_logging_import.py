"""
Test that poisonguard_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from poisonguard_logging and use the logger."""
    from backend_poisonguard.poisonguard_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_bind_session():
    from backend_poisonguard.poisonguard_logging.logger import bind_session

    logger = bind_session("abc123")
    logger.info("session_event", count=1)

