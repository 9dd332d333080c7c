"""
Observability for sfbwatch: structured logging with correlation IDs.
"""

from sfbwatch.observability.structured_logging import (
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    setup_structured_logging,
)

__all__ = [
    "StructuredFormatter",
    "add_correlation_id",
    "get_correlation_id",
    "setup_structured_logging",
]
