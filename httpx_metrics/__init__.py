"""
Timing and payload metrics for httpx client transactions.

Features:
- `use_request_metric` / `use_response_metric` / `use` to register callbacks
- `RequestMetric`, `ResponseMetric`, `ErrorMetric` snapshots per transaction
- per-client correlation of responses and errors to their requests
- `HTTPX_METRICS_DISABLE` opt-out via environment variable
"""

from .config import MetricsConfig
from .correlation import CorrelationContext
from .exceptions import CorrelationError, InstrumentationError, MetricsError
from .failures import Failure, FailureKind, classify_failure
from .instrumentation import (
    Instrumentation,
    instrument,
    uninstrument,
    use,
    use_request_metric,
    use_response_metric,
)
from .metrics import (
    RESPONSE_TIME_UNAVAILABLE,
    ErrorMetric,
    RequestMetric,
    ResponseInfo,
    ResponseMetric,
)

__all__ = [
    "RESPONSE_TIME_UNAVAILABLE",
    "CorrelationContext",
    "CorrelationError",
    "ErrorMetric",
    "Failure",
    "FailureKind",
    "Instrumentation",
    "InstrumentationError",
    "MetricsConfig",
    "MetricsError",
    "RequestMetric",
    "ResponseInfo",
    "ResponseMetric",
    "classify_failure",
    "instrument",
    "uninstrument",
    "use",
    "use_request_metric",
    "use_response_metric",
]
