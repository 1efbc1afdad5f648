"""
Metric snapshots for one HTTP transaction.

- RequestMetric: what was sent, and when
- ResponseMetric: what came back, correlated to its RequestMetric
- ErrorMetric: how the transaction failed, correlated when possible

All timestamps come from the same monotonic clock (``time.perf_counter`` by
default) and durations are in that clock's unit, seconds.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

import httpx

from .failures import FailureKind, classify_failure

Clock = Callable[[], float]
Headers = Dict[str, Union[str, List[str]]]

# response_time of an ErrorMetric that could not be tied to its request
RESPONSE_TIME_UNAVAILABLE = -1


def headers_to_dict(headers: Optional[httpx.Headers]) -> Headers:
    """Copy httpx headers into a plain dict, collecting repeated names into lists."""
    result: Headers = {}
    if headers is None:
        return result
    for name, value in headers.multi_items():
        if name not in result:
            result[name] = value
        elif isinstance(result[name], list):
            result[name].append(value)
        else:
            result[name] = [result[name], value]
    return result


def _request_body(request: httpx.Request):
    try:
        return request.content
    except httpx.RequestNotRead:
        return None


def _response_body(response: httpx.Response):
    try:
        return response.content
    except httpx.ResponseNotRead:
        return None


@dataclass(frozen=True)
class RequestMetric:
    method: Optional[str]
    url: Optional[str]
    headers: Headers = field(default_factory=dict)
    body: Any = None
    start_time: float = 0.0

    @classmethod
    def from_request(
        cls, request: httpx.Request, clock: Clock = time.perf_counter, start_time: Optional[float] = None
    ) -> "RequestMetric":
        if start_time is None:
            start_time = clock()
        return cls(
            method=request.method,
            url=str(request.url),
            headers=headers_to_dict(request.headers),
            body=_request_body(request),
            start_time=start_time,
        )

    def as_dict(self) -> dict:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "body": self.body,
            "start_time": self.start_time,
        }


@dataclass(frozen=True)
class ResponseInfo:
    status_code: int
    status_message: str
    body: Any = None

    def as_dict(self) -> dict:
        return {
            "status_code": self.status_code,
            "status_message": self.status_message,
            "body": self.body,
        }


@dataclass(frozen=True)
class ResponseMetric:
    """A completed response, paired with the request that produced it."""

    method: Optional[str]
    url: Optional[str]
    headers: Headers
    request: RequestMetric
    response: ResponseInfo
    end_time: float
    response_time: float

    @classmethod
    def from_response(
        cls,
        response: httpx.Response,
        request_metric: RequestMetric,
        clock: Clock = time.perf_counter,
        end_time: Optional[float] = None,
    ) -> "ResponseMetric":
        if end_time is None:
            end_time = clock()
        request = response.request
        return cls(
            method=request.method,
            url=str(request.url),
            headers=headers_to_dict(response.headers),
            request=request_metric,
            response=ResponseInfo(
                status_code=response.status_code,
                status_message=response.reason_phrase,
                body=_response_body(response),
            ),
            end_time=end_time,
            response_time=end_time - request_metric.start_time,
        )

    def as_dict(self) -> dict:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "request": self.request.as_dict(),
            "response": self.response.as_dict(),
            "end_time": self.end_time,
            "response_time": self.response_time,
        }


@dataclass(frozen=True)
class ErrorMetric:
    """
    A failed transaction.

    ``request`` is set only when the failure is an httpx error whose request
    went through the request hook of the same client. ``headers`` are the
    request headers, since a failure may come without any response.

    ``kind`` describes the shape of the failure, not whether it was correlated:
    an httpx error for a request this client never hooked (``TooManyRedirects``
    names the redirect it refused to send) is ``CLIENT_WITH_REQUEST`` with
    ``request=None``. Check ``correlated`` for that.
    """

    error: Any
    end_time: float
    response_time: float = RESPONSE_TIME_UNAVAILABLE
    kind: FailureKind = FailureKind.UNRECOGNIZED
    method: Optional[str] = None
    url: Optional[str] = None
    headers: Optional[Headers] = None
    request: Optional[RequestMetric] = None

    @property
    def correlated(self) -> bool:
        return self.request is not None

    @property
    def timing_available(self) -> bool:
        return self.correlated

    @classmethod
    def from_error(
        cls, error, context=None, clock: Clock = time.perf_counter, end_time: Optional[float] = None
    ) -> "ErrorMetric":
        """
        Build the metric for ``error``, looking its request up in ``context``.

        Never raises: anything that cannot be correlated degrades to a metric
        without ``request`` and with RESPONSE_TIME_UNAVAILABLE timing.
        """
        if end_time is None:
            end_time = clock()
        failure = classify_failure(error)
        if failure.kind is not FailureKind.CLIENT_WITH_REQUEST:
            return cls(error=error, end_time=end_time, kind=failure.kind)

        request = failure.request
        request_metric = context.read(request) if context is not None else None
        if request_metric is None:
            response_time = RESPONSE_TIME_UNAVAILABLE
        else:
            response_time = end_time - request_metric.start_time
        return cls(
            error=error,
            end_time=end_time,
            response_time=response_time,
            kind=failure.kind,
            method=request.method,
            url=str(request.url),
            headers=headers_to_dict(request.headers),
            request=request_metric,
        )

    def as_dict(self) -> dict:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "request": self.request.as_dict() if self.request else None,
            "end_time": self.end_time,
            "response_time": self.response_time,
            "kind": self.kind.value,
            "correlated": self.correlated,
            "error": repr(self.error),
        }
