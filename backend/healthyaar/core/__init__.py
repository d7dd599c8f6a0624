"""Core module - logging setup shared by the backend and the client."""

from .logging_config import setup_logging, filter_sensitive_data, truncate_large_data

__all__ = ['setup_logging', 'filter_sensitive_data', 'truncate_large_data']
