"""Application services."""

from .quotes import QuoteService, configure_quote_service, get_quote_service

__all__ = [
    "QuoteService",
    "configure_quote_service",
    "get_quote_service",
]
