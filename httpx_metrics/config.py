"""
Runtime configuration, read from the environment.

- HTTPX_METRICS_DISABLE=1: instrument() installs no hooks
- HTTPX_METRICS_READ_RESPONSE_BODY=1: read response bodies so metrics carry them
"""

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(environ, name: str) -> bool:
    return environ.get(name, "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class MetricsConfig:
    disabled: bool = False
    read_response_body: bool = False

    @classmethod
    def from_env(cls, environ=None) -> "MetricsConfig":
        if environ is None:
            environ = os.environ
        return cls(
            disabled=_flag(environ, "HTTPX_METRICS_DISABLE"),
            read_response_body=_flag(environ, "HTTPX_METRICS_READ_RESPONSE_BODY"),
        )
