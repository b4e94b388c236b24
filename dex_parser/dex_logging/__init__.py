"""
Structured logging for the DEX parser.

JSON logs with timestamp, event_type and keyword context (signature, program_id).
Use get_logger() in every module for aggregation-friendly output.
"""

from dex_parser.dex_logging.logger import get_logger

__all__ = ["get_logger"]
