"""
Structured logging for Backend PoisonGuard.

JSON logs with timestamp, event_type and analysis context (tx counts, levels).
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_poisonguard.poisonguard_logging.logger import get_logger

__all__ = ["get_logger"]
