"""
Registration helpers: attach metric callbacks to an httpx client.

    client = httpx.Client()
    use(client, on_request_metric, on_response_metric)

One Instrumentation is kept per client, so separate calls share the same
correlation context.
"""

import time

from .instrument_httpx import Instrumentation

_ATTRIBUTE = "_httpx_metrics_instrumentation"


def instrument(client, clock=None, config=None) -> Instrumentation:
    """
    Return the client's Instrumentation, creating it on first use.
    ``clock`` and ``config`` only take effect on that first call.
    """
    instrumentation = getattr(client, _ATTRIBUTE, None)
    if instrumentation is None:
        instrumentation = Instrumentation(client, clock=clock or time.perf_counter, config=config)
        setattr(client, _ATTRIBUTE, instrumentation)
    return instrumentation


def uninstrument(client) -> None:
    instrumentation = getattr(client, _ATTRIBUTE, None)
    if instrumentation is not None:
        instrumentation.remove()
        delattr(client, _ATTRIBUTE)


def use_request_metric(client, callback) -> Instrumentation:
    return instrument(client).on_request(callback)


def use_response_metric(client, on_success, on_error=None) -> Instrumentation:
    return instrument(client).on_response(on_success, on_error)


def use(client, request_callback, response_callback) -> Instrumentation:
    """Register a request callback and a response callback; failures are not reported."""
    return instrument(client).use(request_callback, response_callback)


__all__ = [
    "Instrumentation",
    "instrument",
    "uninstrument",
    "use",
    "use_request_metric",
    "use_response_metric",
]
