"""Tests for RequestMetric, ResponseMetric and ErrorMetric derivation."""

from __future__ import annotations

import dataclasses
from typing import Any

import httpx
import pytest

from httpx_metrics.correlation import CorrelationContext
from httpx_metrics.failures import FailureKind
from httpx_metrics.metrics import (
    RESPONSE_TIME_UNAVAILABLE,
    ErrorMetric,
    RequestMetric,
    ResponseMetric,
    headers_to_dict,
)


def _request(**kwargs: Any) -> httpx.Request:
    kwargs.setdefault("method", "GET")
    kwargs.setdefault("url", "https://api.test/items")
    return httpx.Request(**kwargs)


class TestHeadersToDict:
    def test_single_values_are_strings(self) -> None:
        assert headers_to_dict(httpx.Headers({"Accept": "application/json"})) == {
            "accept": "application/json"
        }

    def test_repeated_names_become_lists(self) -> None:
        headers = httpx.Headers([("set-cookie", "a=1"), ("set-cookie", "b=2"), ("x", "y")])
        assert headers_to_dict(headers) == {"set-cookie": ["a=1", "b=2"], "x": "y"}

    def test_none_is_empty(self) -> None:
        assert headers_to_dict(None) == {}


class TestRequestMetric:
    def test_captures_request_fields(self, fake_clock: Any) -> None:
        clock = fake_clock(100.0)
        request = _request(method="POST", headers={"X-Trace": "abc"}, content=b"payload")

        metric = RequestMetric.from_request(request, clock=clock)

        assert metric.method == "POST"
        assert metric.url == "https://api.test/items"
        assert metric.headers["x-trace"] == "abc"
        assert metric.body == b"payload"
        assert metric.start_time == 100.0

    def test_reads_clock_exactly_once(self, fake_clock: Any) -> None:
        clock = fake_clock(1.0, 2.0)
        RequestMetric.from_request(_request(), clock=clock)
        assert clock.calls == 1

    def test_explicit_start_time_skips_clock(self, fake_clock: Any) -> None:
        clock = fake_clock()
        metric = RequestMetric.from_request(_request(), clock=clock, start_time=7.0)
        assert metric.start_time == 7.0
        assert clock.calls == 0

    def test_unread_streaming_body_is_absent(self, fake_clock: Any) -> None:
        request = _request(method="POST", content=iter([b"chunk"]))
        metric = RequestMetric.from_request(request, clock=fake_clock(0.0))
        assert metric.body is None

    def test_is_immutable(self, fake_clock: Any) -> None:
        metric = RequestMetric.from_request(_request(), clock=fake_clock(0.0))
        with pytest.raises(dataclasses.FrozenInstanceError):
            metric.start_time = 5.0  # type: ignore[misc]


class TestResponseMetric:
    def test_get_items_scenario(self) -> None:
        request = _request()
        request_metric = RequestMetric.from_request(request, start_time=100)
        response = httpx.Response(200, request=request, content=b'{"items": []}')

        metric = ResponseMetric.from_response(response, request_metric, end_time=150)

        assert metric.response_time == 50
        assert metric.response.status_code == 200
        assert metric.response.status_message == "OK"
        assert metric.request.start_time == 100
        assert metric.request is request_metric

    @pytest.mark.parametrize(("t0", "t1"), [(0.0, 0.0), (10.5, 12.75), (3.0, 1003.0)])
    def test_response_time_is_end_minus_start(self, t0: float, t1: float) -> None:
        request = _request()
        request_metric = RequestMetric.from_request(request, start_time=t0)
        response = httpx.Response(204, request=request)

        metric = ResponseMetric.from_response(response, request_metric, end_time=t1)

        assert metric.end_time == t1
        assert metric.response_time == t1 - t0

    def test_uses_response_headers_and_body(self) -> None:
        request = _request(headers={"X-Req": "1"})
        request_metric = RequestMetric.from_request(request, start_time=0)
        response = httpx.Response(
            404, request=request, headers={"X-Resp": "2"}, content=b"missing"
        )

        metric = ResponseMetric.from_response(response, request_metric, end_time=1)

        assert metric.headers["x-resp"] == "2"
        assert "x-req" not in metric.headers
        assert metric.response.body == b"missing"
        assert metric.response.status_message == "Not Found"
        assert metric.method == "GET"
        assert metric.url == "https://api.test/items"

    def test_unread_body_is_absent(self) -> None:
        request = _request()
        request_metric = RequestMetric.from_request(request, start_time=0)
        response = httpx.Response(200, request=request, content=iter([b"later"]))

        metric = ResponseMetric.from_response(response, request_metric, end_time=1)

        assert metric.response.body is None

    def test_as_dict_nests_request(self) -> None:
        request = _request()
        request_metric = RequestMetric.from_request(request, start_time=1)
        response = httpx.Response(200, request=request)

        data = ResponseMetric.from_response(response, request_metric, end_time=3).as_dict()

        assert data["request"]["start_time"] == 1
        assert data["response"]["status_code"] == 200
        assert data["response_time"] == 2


class TestErrorMetric:
    def test_uncorrelated_error_has_no_request(self) -> None:
        error = httpx.ConnectTimeout("timed out", request=_request())

        metric = ErrorMetric.from_error(error, CorrelationContext(), end_time=42)

        assert metric.request is None
        assert metric.response_time == RESPONSE_TIME_UNAVAILABLE == -1
        assert not metric.timing_available
        assert not metric.correlated
        assert metric.error is error
        assert metric.kind is FailureKind.CLIENT_WITH_REQUEST
        # identity still comes from the failed request
        assert metric.method == "GET"
        assert metric.url == "https://api.test/items"

    def test_correlated_error_computes_timing(self) -> None:
        request = _request(headers={"Authorization": "Bearer t"})
        context = CorrelationContext()
        request_metric = RequestMetric.from_request(request, start_time=100)
        context.attach(request, request_metric)
        error = httpx.ReadTimeout("slow", request=request)

        metric = ErrorMetric.from_error(error, context, end_time=130)

        assert metric.request is request_metric
        assert metric.response_time == 30
        assert metric.response_time == metric.end_time - metric.request.start_time
        assert metric.timing_available
        assert metric.correlated
        assert metric.headers == {"host": "api.test", "authorization": "Bearer t"}

    def test_client_error_without_request(self) -> None:
        error = httpx.ConnectError("refused")

        metric = ErrorMetric.from_error(error, CorrelationContext(), end_time=5)

        assert metric.kind is FailureKind.CLIENT_WITHOUT_REQUEST
        assert metric.request is None
        assert metric.url is None
        assert metric.response_time == RESPONSE_TIME_UNAVAILABLE

    @pytest.mark.parametrize("error", [ValueError("bad"), "not an exception", None, 17])
    def test_unrecognized_failures_degrade(self, error: Any) -> None:
        metric = ErrorMetric.from_error(error, CorrelationContext(), end_time=5)

        assert metric.kind is FailureKind.UNRECOGNIZED
        assert metric.request is None
        assert metric.headers is None
        assert metric.response_time == RESPONSE_TIME_UNAVAILABLE
        assert metric.error is error

    def test_without_context(self) -> None:
        error = httpx.ReadError("reset", request=_request())
        metric = ErrorMetric.from_error(error, end_time=1)
        assert metric.request is None
        assert metric.response_time == RESPONSE_TIME_UNAVAILABLE

    def test_reads_clock_when_no_end_time(self, fake_clock: Any) -> None:
        metric = ErrorMetric.from_error(ValueError(), clock=fake_clock(9.0))
        assert metric.end_time == 9.0

    def test_as_dict_uses_repr_for_error(self) -> None:
        data = ErrorMetric.from_error(ValueError("bad"), end_time=1).as_dict()
        assert data["error"] == "ValueError('bad')"
        assert data["kind"] == "unrecognized"
        assert data["request"] is None
        assert data["correlated"] is False
