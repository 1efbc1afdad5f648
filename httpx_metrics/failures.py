"""
Classification of failures observed on an instrumented client.
"""

import enum
from typing import NamedTuple, Optional

import httpx


class FailureKind(enum.Enum):
    """Shape of a failure. Whether it was correlated is decided separately."""

    CLIENT_WITH_REQUEST = "client_with_request"
    CLIENT_WITHOUT_REQUEST = "client_without_request"
    UNRECOGNIZED = "unrecognized"


class Failure(NamedTuple):
    kind: FailureKind
    request: Optional[httpx.Request] = None


def classify_failure(error) -> Failure:
    """
    Sort a raised value into one of the three failure kinds.

    Only httpx's own errors are recognized. Their ``.request`` property raises
    RuntimeError until httpx has attached the request, which happens once the
    request reaches the transport.
    """
    if not isinstance(error, httpx.HTTPError):
        return Failure(FailureKind.UNRECOGNIZED)
    try:
        request = error.request
    except RuntimeError:
        return Failure(FailureKind.CLIENT_WITHOUT_REQUEST)
    return Failure(FailureKind.CLIENT_WITH_REQUEST, request)
