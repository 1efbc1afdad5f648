"""
Correlation context: pairs each in-flight httpx.Request with the metric captured for it.
"""

import logging
import weakref
from typing import Optional

import httpx

from .metrics import RequestMetric

logger = logging.getLogger(__name__)


class CorrelationContext:
    """
    Per-client mapping from request identity to its RequestMetric.

    Keys are the request objects themselves, held weakly, so an entry lives
    exactly as long as its transaction and two requests never share one.
    """

    def __init__(self):
        self._metrics = weakref.WeakKeyDictionary()

    def attach(self, request: httpx.Request, metric: RequestMetric) -> None:
        self._metrics[request] = metric

    def read(self, request: httpx.Request) -> Optional[RequestMetric]:
        """Return the metric attached to this request, or None if there is none."""
        try:
            return self._metrics.get(request)
        except TypeError:
            # not weak-referenceable, so it was never attached
            logger.debug("Cannot correlate %r", request)
            return None

    def __contains__(self, request) -> bool:
        return self.read(request) is not None

    def __len__(self) -> int:
        return len(self._metrics)
