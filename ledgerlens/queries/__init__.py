"""Analytics dispatch package."""

from ledgerlens.queries.dispatcher import AnalyticsDispatcher

__all__ = ["AnalyticsDispatcher"]
