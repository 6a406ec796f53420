"""
CLI config commands — settings checking.

Usage:
    tls-secret-injector check-config [--json] [--insecure]
"""

from __future__ import annotations

import click

from . import get_settings


@click.command("check-config")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--insecure", is_flag=True, help="Do not require the webhook certificate")
@click.pass_context
def check_config(ctx: click.Context, as_json: bool, insecure: bool) -> None:
    """Check the resolved settings."""
    from ..config.validator import SettingsValidator

    settings = get_settings(ctx)
    results = SettingsValidator(settings, require_certs=not insecure).validate_all()
    failed = [s for s in results if not s.ok]

    if as_json:
        import json
        click.echo(json.dumps({
            "settings": settings.to_dict(),
            "checks": [s.to_dict() for s in results],
            "ok": not failed,
        }, indent=2))
    else:
        click.echo("\n📋 Configuration Status\n")
        for status in results:
            if status.ok:
                click.secho(f"  ✓ {status.setting}", fg="green", nl=False)
                click.echo(f" — {status.message}")
            else:
                click.secho(f"  ✗ {status.setting}", fg="red", nl=False)
                click.echo(f" — {status.message}")
                if status.missing:
                    click.echo(f"      missing: {', '.join(status.missing)}")
                if status.guidance:
                    click.echo(f"      → {status.guidance}")

        click.echo()
        click.secho(f"Summary: {len(results) - len(failed)} ok, {len(failed)} failing", bold=True)

    if failed:
        raise SystemExit(1)
