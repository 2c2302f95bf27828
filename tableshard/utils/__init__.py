"""
Utilities package for tableshard.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of sharding logic.
"""

from tableshard.utils.logging import JsonFormatter, configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "JsonFormatter",
]
