"""Command line interface for deployconf.

Commands:
- normalize: validate a deployment config and emit the policy-applied document
- kinds: list supported resource kinds and their templates
- init-config: write a default settings file
"""

import json
from pathlib import Path
from typing import Optional

import click
import structlog

from .config import ConfigLoader, OutputFormat
from .document import load_document, normalize_document
from .exceptions import DeployConfError
from .logging_config import configure_logging
from .overlay import dump_structured
from .resources import ResourceRegistry

logger = structlog.get_logger(__name__)


@click.group(name="deployconf")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: ~/.config/deployconf/config.yaml)",
)
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], log_level: Optional[str]) -> None:
    """Normalize deployment configs into policy-compliant resource documents."""
    ctx.ensure_object(dict)
    loader = ConfigLoader(config_path)
    try:
        settings = loader.merge_cli_args(loader.load(), {"log_level": log_level})
    except DeployConfError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    configure_logging(settings.log_level)
    ctx.obj["loader"] = loader
    ctx.obj["settings"] = settings


@cli.command(name="normalize")
@click.argument(
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the normalized document here instead of stdout",
)
@click.option(
    "--format",
    "format_type",
    type=click.Choice([f.value for f in OutputFormat], case_sensitive=False),
    default=None,
    help="Output format (default from settings: yaml)",
)
@click.option(
    "--require-audit-sink/--no-require-audit-sink",
    default=None,
    help="Fail when a resource cannot be wired to an audit log bucket",
)
@click.option(
    "--manifest",
    is_flag=True,
    help="Print the template manifest instead of the document",
)
@click.pass_context
def normalize(
    ctx: click.Context,
    config_file: Path,
    output: Optional[Path],
    format_type: Optional[str],
    require_audit_sink: Optional[bool],
    manifest: bool,
) -> None:
    """Validate CONFIG_FILE, apply project policy and emit the result.

    Nothing is written unless every resource validates and every policy
    step succeeds.

    Examples:

        deployconf normalize config.yaml -o generated.yaml

        deployconf normalize config.yaml --format json --require-audit-sink
    """
    loader: ConfigLoader = ctx.obj["loader"]
    settings = loader.merge_cli_args(
        ctx.obj["settings"],
        {
            "output_format": format_type.lower() if format_type else None,
            "policy": {"require_audit_sink": require_audit_sink},
        },
    )

    try:
        document = load_document(config_file)
        normalized = normalize_document(
            document, require_audit_sink=settings.policy.require_audit_sink
        )
    except DeployConfError as e:
        logger.error("normalize_failed", config_file=str(config_file), **e.to_dict())
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if manifest:
        click.echo(json.dumps(document.template_manifest(), indent=2))
        return

    payload = dump_structured(normalized, settings.output_format.value)
    if output is None:
        click.echo(payload.decode("utf-8"), nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(payload)
    click.echo(f"Wrote {len(document.all_resources())} resources to {output}", err=True)


@cli.command(name="kinds")
def kinds() -> None:
    """List supported resource kinds and their templates."""
    for kind_cls in ResourceRegistry.get_all_classes():
        click.echo(f"{kind_cls.KIND}\t{kind_cls.TEMPLATE}")


@cli.command(name="init-config")
@click.option("--force", is_flag=True, help="Overwrite an existing settings file")
@click.pass_context
def init_config(ctx: click.Context, force: bool) -> None:
    """Write a default settings file."""
    loader: ConfigLoader = ctx.obj["loader"]
    try:
        path = loader.create_default_config(force=force)
    except DeployConfError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Created {path}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
