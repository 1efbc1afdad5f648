"""
Hooks that turn httpx request/response/error events into metrics.

Request and response events use the client's ``event_hooks``. httpx has no
error hook, so failures are observed by wrapping ``send`` on the client
instance; the original exception is always re-raised unchanged.

Response hooks only record the time headers arrived. The ResponseMetric is
built and delivered once ``send`` returns, so it sees a body httpx has read,
and a hop that fails later in the same ``send`` reports its ErrorMetric only.
"""

import asyncio
import contextvars
import inspect
import logging
import time
from typing import NamedTuple, Optional

import httpx

from ..config import MetricsConfig
from ..correlation import CorrelationContext
from ..exceptions import CorrelationError, InstrumentationError
from ..failures import classify_failure
from ..metrics import ErrorMetric, RequestMetric, ResponseMetric

logger = logging.getLogger(__name__)


def _call(callback, *args):
    if callback is not None:
        callback(*args)


async def _acall(callback, *args):
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class _Completed(NamedTuple):
    response: httpx.Response
    request_metric: RequestMetric
    end_time: float
    callback: object


class _Send:
    """Requests dispatched and responses received during one call to ``send``."""

    def __init__(self):
        self.dispatched = []
        self.completed = []

    def delivered(self, error=None):
        """
        Responses to report. When ``send`` failed with ``error``, the hop it
        failed on reports the error instead, so its response is left out. That
        hop is the request the error names, or else the last one dispatched.
        """
        if error is None:
            return list(self.completed)
        failed = classify_failure(error).request
        if failed is None and self.dispatched:
            failed = self.dispatched[-1]
        return [c for c in self.completed if c.response.request is not failed]


class Instrumentation:
    """
    Registrar for one httpx client.

    Owns the client's CorrelationContext and every hook installed on it, so
    the hooks can be removed again with ``remove()``.
    """

    def __init__(self, client, clock=time.perf_counter, config: Optional[MetricsConfig] = None):
        if not isinstance(client, (httpx.Client, httpx.AsyncClient)):
            raise InstrumentationError(
                f"Expected httpx.Client or httpx.AsyncClient, got {type(client).__name__}"
            )
        self.client = client
        self.clock = clock
        self.config = config if config is not None else MetricsConfig.from_env()
        self.context = CorrelationContext()
        self.is_async = isinstance(client, httpx.AsyncClient)
        self._request_hooks = []
        self._response_hooks = []
        self._error_callbacks = []
        self._send_wrapper = None
        self._current_send = contextvars.ContextVar(f"httpx_metrics_send_{id(self)}", default=None)

    @property
    def enabled(self) -> bool:
        return not self.config.disabled

    def on_request(self, callback=None):
        """Capture a RequestMetric for every outgoing request and pass it to ``callback(metric, request)``."""
        if not self.enabled:
            logger.debug("httpx metrics disabled, request hook not installed")
            return self

        def capture(request):
            metric = RequestMetric.from_request(request, clock=self.clock)
            self.context.attach(request, metric)
            current = self._current_send.get()
            if current is not None:
                current.dispatched.append(request)
            logger.debug("Captured request metric for %s %s", metric.method, metric.url)
            return metric

        if self.is_async:
            async def request_hook(request):
                await _acall(callback, capture(request), request)
        else:
            def request_hook(request):
                _call(callback, capture(request), request)

        self.client.event_hooks["request"].append(request_hook)
        self._request_hooks.append(request_hook)
        return self

    def on_response(self, on_success=None, on_error=None):
        """
        Report completed responses to ``on_success(metric, response)`` and
        failures to ``on_error(metric, error)``. Either callback may be None.
        """
        if not self.enabled:
            logger.debug("httpx metrics disabled, response hooks not installed")
            return self

        def complete(response, end_time):
            request_metric = self.context.read(response.request)
            if request_metric is None:
                raise CorrelationError(response.request)
            completed = _Completed(response, request_metric, end_time, on_success)
            current = self._current_send.get()
            if current is None:
                # send was bypassed, nothing will settle this later
                return completed
            current.completed.append(completed)
            return None

        if self.is_async:
            async def response_hook(response):
                end_time = self.clock()
                completed = complete(response, end_time)
                if self.config.read_response_body:
                    await response.aread()
                if completed is not None:
                    await self._adeliver([completed])
        else:
            def response_hook(response):
                end_time = self.clock()
                completed = complete(response, end_time)
                if self.config.read_response_body:
                    response.read()
                if completed is not None:
                    self._deliver([completed])

        self.client.event_hooks["response"].append(response_hook)
        self._response_hooks.append(response_hook)

        if on_error is not None:
            self._error_callbacks.append(on_error)
        self._wrap_send()
        return self

    def use(self, request_callback=None, response_callback=None):
        return self.on_request(request_callback).on_response(response_callback)

    def _response_metric(self, completed: _Completed) -> ResponseMetric:
        metric = ResponseMetric.from_response(
            completed.response, completed.request_metric, end_time=completed.end_time
        )
        logger.debug(
            "Captured response metric for %s %s: %s in %.6fs",
            metric.method,
            metric.url,
            metric.response.status_code,
            metric.response_time,
        )
        return metric

    def _deliver(self, completed):
        for item in completed:
            _call(item.callback, self._response_metric(item), item.response)

    async def _adeliver(self, completed):
        for item in completed:
            await _acall(item.callback, self._response_metric(item), item.response)

    def _error_metric(self, error) -> ErrorMetric:
        metric = ErrorMetric.from_error(error, self.context, clock=self.clock)
        if metric.timing_available:
            logger.debug("Captured error metric for %s %s: %r", metric.method, metric.url, error)
        else:
            logger.debug("Uncorrelated error metric (%s): %r", metric.kind.value, error)
        return metric

    def _wrap_send(self):
        if self._send_wrapper is not None:
            return
        original_send = self.client.send

        if self.is_async:
            async def send(request, **kwargs):
                current = _Send()
                token = self._current_send.set(current)
                try:
                    response = await original_send(request, **kwargs)
                except CorrelationError:
                    raise
                except (Exception, asyncio.CancelledError) as exc:
                    await self._adeliver(current.delivered(exc))
                    if self._error_callbacks:
                        metric = self._error_metric(exc)
                        for callback in self._error_callbacks:
                            await _acall(callback, metric, exc)
                    raise
                finally:
                    self._current_send.reset(token)
                await self._adeliver(current.delivered())
                return response
        else:
            def send(request, **kwargs):
                current = _Send()
                token = self._current_send.set(current)
                try:
                    response = original_send(request, **kwargs)
                except CorrelationError:
                    raise
                except Exception as exc:
                    self._deliver(current.delivered(exc))
                    if self._error_callbacks:
                        metric = self._error_metric(exc)
                        for callback in self._error_callbacks:
                            _call(callback, metric, exc)
                    raise
                finally:
                    self._current_send.reset(token)
                self._deliver(current.delivered())
                return response

        self.client.send = send
        self._send_wrapper = send
        logger.debug("Wrapped %s.send for response and error metrics", type(self.client).__name__)

    def remove(self):
        """Uninstall every hook this registrar added and restore ``send``."""
        for name, hooks in (("request", self._request_hooks), ("response", self._response_hooks)):
            installed = self.client.event_hooks[name]
            for hook in hooks:
                if hook in installed:
                    installed.remove(hook)
            hooks.clear()
        if self._send_wrapper is not None and vars(self.client).get("send") is self._send_wrapper:
            del self.client.send
        self._send_wrapper = None
        self._error_callbacks.clear()
