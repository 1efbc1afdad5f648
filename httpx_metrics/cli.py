#!/usr/bin/env python3
"""
cli.py

Command-line probe: send one request through an instrumented httpx client
and show the metrics captured for it.
"""
import logging

import click
import httpx
from rich import print
from rich.console import Group

from httpx_metrics import display
from httpx_metrics.config import MetricsConfig
from httpx_metrics.instrumentation import instrument
from httpx_metrics.metrics import RequestMetric, ResponseMetric


def build_client(timeout: float, follow_redirects: bool) -> httpx.Client:
    return httpx.Client(timeout=timeout, follow_redirects=follow_redirects)


def parse_headers(values):
    headers = []
    for value in values:
        if ":" not in value:
            raise click.BadParameter(f"expected NAME:VALUE, got {value!r}", param_hint="--header")
        name, _, content = value.partition(":")
        headers.append((name.strip(), content.strip()))
    return headers


@click.command()
@click.argument("url")
@click.option("--method", "-X", default="GET", show_default=True, help="HTTP method")
@click.option("--header", "-H", "header_values", multiple=True, help="Request header as NAME:VALUE")
@click.option("--data", "-d", default=None, help="Request body")
@click.option("--timeout", default=10.0, type=float, show_default=True, help="Timeout in seconds")
@click.option("--follow-redirects", "-L", is_flag=True, help="Follow redirects (one metric per hop)")
@click.option("--read-body/--no-read-body", default=True, help="Capture the response body")
@click.option("--json", "as_json", is_flag=True, help="Print metrics as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(url, method, header_values, data, timeout, follow_redirects, read_body, as_json, verbose):
    """
    Send a request to URL and print its request, response and error metrics.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    headers = parse_headers(header_values)

    metrics = []
    config = MetricsConfig(read_response_body=read_body)
    with build_client(timeout, follow_redirects) as client:
        instrument(client, config=config).on_request(
            lambda metric, request: metrics.append(metric)
        ).on_response(
            lambda metric, response: metrics.append(metric),
            lambda metric, error: metrics.append(metric),
        )
        try:
            client.request(method.upper(), url, headers=headers, content=data)
            failed = False
        except httpx.InvalidURL as e:
            click.echo(f"Invalid URL: {e}", err=True)
            raise SystemExit(1)
        except httpx.HTTPError:
            failed = True

    if as_json:
        click.echo(display.to_json(metrics))
    else:
        trees = []
        for metric in metrics:
            if isinstance(metric, RequestMetric):
                trees.append(display.request_tree(metric))
            elif isinstance(metric, ResponseMetric):
                trees.append(display.response_tree(metric))
            else:
                trees.append(display.error_tree(metric))
        print(Group(*trees))
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
