"""
Exceptions raised by the instrumentation itself.
"""


class MetricsError(Exception):
    """Base class for errors raised by httpx_metrics."""


class CorrelationError(MetricsError, LookupError):
    """A response arrived for a request that was never captured by a request hook."""

    def __init__(self, request):
        self.request = request
        super().__init__(
            f"No request metric attached to {request.method} {request.url}; "
            "was the request hook registered on this client?"
        )


class InstrumentationError(MetricsError, TypeError):
    """The object handed to the registrar is not an httpx client."""
