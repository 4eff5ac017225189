from pagebuilder.middleware.logging import (
    RequestIdFilter,
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_request_id,
    setup_structured_logging,
)

__all__ = [
    "RequestIdFilter",
    "StructuredFormatter",
    "StructuredLoggingMiddleware",
    "get_request_id",
    "setup_structured_logging",
]
