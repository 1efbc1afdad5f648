"""
Render metrics as Rich trees with human-friendly durations.
"""

import json

from rich.markup import escape
from rich.tree import Tree

from .metrics import ErrorMetric, RequestMetric, ResponseMetric


def format_duration(seconds: float) -> str:
    """Convert seconds to a human-friendly string."""
    if seconds < 0:
        return "n/a"
    if seconds >= 1:
        return f"{seconds:.2f}s"
    elif seconds >= 0.001:
        return f"{seconds * 1_000:.2f}ms"
    else:
        return f"{seconds * 1_000_000:.0f}μs"


def _body_preview(body, limit: int = 200) -> str:
    if body is None:
        return "[dim]not captured[/]"
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    text = str(body)
    if not text:
        return "[dim]empty[/]"
    if len(text) > limit:
        text = text[:limit] + "…"
    return escape(text)


def _add_headers(tree: Tree, headers):
    branch = tree.add("[b]headers[/]")
    for name, value in (headers or {}).items():
        if isinstance(value, list):
            value = ", ".join(value)
        branch.add(escape(f"{name}: {value}"))


def request_tree(metric: RequestMetric) -> Tree:
    tree = Tree(f"[b cyan]request[/] {metric.method} {metric.url}")
    _add_headers(tree, metric.headers)
    tree.add(f"[b]body[/] {_body_preview(metric.body)}")
    return tree


def response_tree(metric: ResponseMetric) -> Tree:
    status = metric.response.status_code
    colour = "green" if status < 400 else "red"
    tree = Tree(
        f"[b {colour}]response[/] {status} {metric.response.status_message} • "
        f"{format_duration(metric.response_time)}"
    )
    _add_headers(tree, metric.headers)
    tree.add(f"[b]body[/] {_body_preview(metric.response.body)}")
    return tree


def error_tree(metric: ErrorMetric) -> Tree:
    timing = format_duration(metric.response_time) if metric.timing_available else "timing unavailable"
    tree = Tree(f"[b red]error[/] {type(metric.error).__name__} • {timing}")
    tree.add(f"[b]kind[/] {metric.kind.value}")
    tree.add(f"[b]detail[/] {escape(str(metric.error))}")
    if metric.url:
        tree.add(f"[b]request[/] {metric.method} {metric.url}")
    return tree


def _json_default(value):
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return repr(value)


def to_json(metrics) -> str:
    """Serialize a list of metrics for the CLI's --json output."""
    return json.dumps([m.as_dict() for m in metrics], indent=2, default=_json_default)
