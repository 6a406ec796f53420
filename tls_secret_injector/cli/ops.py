"""
CLI ops commands — health and metrics.

Usage:
    tls-secret-injector health [--json]
    tls-secret-injector metrics [--format prometheus|json] [--url URL]
"""

from __future__ import annotations

from pathlib import Path

import click

from . import get_settings, get_store


@click.command("health")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Check cluster reachability and the webhook certificate."""
    from ..observability.health import (
        HealthChecker,
        HealthStatus,
        cert_dir_check,
        ping_check,
        store_check,
    )

    settings = get_settings(ctx)
    checker = HealthChecker()
    checker.add_check("ping", ping_check)
    checker.add_check("store", store_check(get_store(ctx)))
    if settings.cert_dir:
        checker.add_check("webhook_certificate", cert_dir_check(Path(settings.cert_dir)))
    result = checker.check()

    if as_json:
        import json
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        status_colors = {
            HealthStatus.HEALTHY: ("✅", "green"),
            HealthStatus.DEGRADED: ("⚠️", "yellow"),
            HealthStatus.UNHEALTHY: ("❌", "red"),
        }
        icon, color = status_colors.get(result.status, ("❓", "white"))

        click.echo()
        click.secho(f"{icon} System Health: {result.status.value.upper()}", fg=color, bold=True)
        click.echo()

        click.echo("Components:")
        for component in result.components:
            c_icon, c_color = status_colors.get(component.status, ("❓", "white"))
            click.echo(f"  {c_icon} ", nl=False)
            click.secho(f"{component.name}", fg=c_color, bold=True, nl=False)
            click.echo(f": {component.message}")
            if component.latency_ms:
                click.echo(f"      Latency: {component.latency_ms:.1f}ms")
        click.echo()

    # Exit code based on health
    if result.status == HealthStatus.UNHEALTHY:
        raise SystemExit(1)


@click.command("metrics")
@click.option("--format", "output_format", type=click.Choice(["prometheus", "json"]), default="prometheus")
@click.option("--url", help="Metrics endpoint (default: http://127.0.0.1:<metrics-port>/metrics)")
@click.pass_context
def metrics_cmd(ctx: click.Context, output_format: str, url: str) -> None:
    """Fetch metrics from the running controller manager."""
    import httpx

    url = url or f"http://127.0.0.1:{get_settings(ctx).metrics_port}/metrics"
    params = {"format": "json"} if output_format == "json" else None

    try:
        response = httpx.get(url, params=params, timeout=10)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise click.ClickException(f"could not read metrics from {url}: {e}")

    if output_format == "json":
        import json
        click.echo(json.dumps(response.json(), indent=2))
    else:
        click.echo(response.text, nl=False)
