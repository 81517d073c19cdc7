"""
Command-line interface for activity-sense
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click

from activity_sense.config.settings import (
    Settings,
    get_settings,
    load_settings_from_file,
    validate_settings,
)
from activity_sense.logger import setup_logging, get_logger
from activity_sense.commands.run import run_command, serve_command
from activity_sense.commands.collect import collect_command
from activity_sense.sensing.recorder import DEFAULT_LABELS

logger = get_logger(__name__)


def get_settings_with_config(config_file: Optional[str] = None) -> Settings:
    """Get settings with optional config file."""
    if config_file:
        return load_settings_from_file(config_file)
    else:
        return get_settings()


def apply_overrides(settings: Settings, **overrides) -> Settings:
    """Return a copy of settings with the non-None overrides applied."""
    update = {key: value for key, value in overrides.items() if value is not None}
    if not update:
        return settings
    return settings.model_copy(update=update)


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Enable debug mode'
)
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool, debug: bool):
    """Streaming human activity recognition from phone motion sensors."""

    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose
    ctx.obj['debug'] = debug

    try:
        settings = get_settings_with_config(config)
    except Exception as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    if debug:
        settings = apply_overrides(settings, debug=True, log_level="DEBUG")
    ctx.obj['settings'] = settings

    setup_logging(settings)
    if debug:
        logger.debug("Debug mode enabled")
    elif verbose:
        logging.getLogger().setLevel(logging.INFO)
        logging.getLogger('activity_sense').setLevel(logging.INFO)
        logger.info("Verbose mode enabled")


@cli.command()
@click.option(
    '--duration',
    type=float,
    help='Stop after this many seconds (default: run until interrupted)'
)
@click.option(
    '--backend',
    type=click.Choice(['gemini', 'heuristic']),
    help='Classification backend (overrides config)'
)
@click.option(
    '--source',
    type=click.Choice(['simulated', 'udp']),
    help='Motion source (overrides config)'
)
@click.option(
    '--profile',
    type=click.Choice(['still', 'walking', 'running']),
    help='Simulated motion profile (overrides config)'
)
@click.option(
    '--format',
    type=click.Choice(['text', 'json']),
    default='text',
    help='Output format (default: text)'
)
@click.pass_context
def run(ctx, duration: Optional[float], backend: Optional[str], source: Optional[str],
        profile: Optional[str], format: str):
    """Start a session and print activity labels as they are published."""

    try:
        settings = apply_overrides(
            ctx.obj['settings'],
            backend=backend,
            source=source,
            simulation_profile=profile,
        )

        asyncio.run(run_command(
            settings=settings,
            duration=duration,
            json_output=format == 'json'
        ))

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Session failed: {e}")
        sys.exit(1)


@cli.command()
@click.option(
    '--host',
    help='WebSocket host to bind to (overrides config)'
)
@click.option(
    '--port',
    type=int,
    help='WebSocket port to bind to (overrides config)'
)
@click.option(
    '--duration',
    type=float,
    help='Stop after this many seconds (default: run until interrupted)'
)
@click.option(
    '--backend',
    type=click.Choice(['gemini', 'heuristic']),
    help='Classification backend (overrides config)'
)
@click.option(
    '--source',
    type=click.Choice(['simulated', 'udp']),
    help='Motion source (overrides config)'
)
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int], duration: Optional[float],
          backend: Optional[str], source: Optional[str]):
    """Run a session and broadcast labels and live sensor data over WebSocket."""

    try:
        settings = apply_overrides(
            ctx.obj['settings'],
            ws_host=host,
            ws_port=port,
            backend=backend,
            source=source,
        )

        asyncio.run(serve_command(settings=settings, duration=duration))

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Failed to serve: {e}")
        sys.exit(1)


@cli.command()
@click.option(
    '--label',
    '-l',
    required=True,
    help=f"Activity label for the recording (e.g. {', '.join(DEFAULT_LABELS)})"
)
@click.option(
    '--duration',
    default=30.0,
    type=float,
    help='Recording length in seconds (default: 30)'
)
@click.option(
    '--output',
    '-o',
    type=click.Path(dir_okay=False),
    help='Output JSON file (default: har_training_data_<ms>.json)'
)
@click.option(
    '--backend',
    type=click.Choice(['gemini', 'heuristic']),
    help='Classification backend (overrides config)'
)
@click.option(
    '--source',
    type=click.Choice(['simulated', 'udp']),
    help='Motion source (overrides config)'
)
@click.pass_context
def collect(ctx, label: str, duration: float, output: Optional[str],
            backend: Optional[str], source: Optional[str]):
    """Record labeled feature vectors for training data."""

    try:
        settings = apply_overrides(ctx.obj['settings'], backend=backend, source=source)

        path = asyncio.run(collect_command(
            settings=settings,
            label=label,
            duration=duration,
            output=output
        ))
        click.echo(f"Saved training data to {path}")

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, recording discarded")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Failed to collect data: {e}")
        sys.exit(1)


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command()
@click.pass_context
def show(ctx):
    """Show current configuration."""

    try:
        click.echo(json.dumps(ctx.obj['settings'].get_public_config(), indent=2))

    except Exception as e:
        logger.error(f"Failed to show configuration: {e}")
        sys.exit(1)


@config.command()
@click.pass_context
def validate(ctx):
    """Validate configuration."""

    issues = validate_settings(ctx.obj['settings'])
    if issues:
        for issue in issues:
            click.echo(f"✗ {issue}")
        sys.exit(1)

    click.echo("✓ Configuration validation passed")


@cli.command()
def version():
    """Show version information."""

    from activity_sense import __version__
    click.echo(f"activity-sense version {__version__}")


if __name__ == '__main__':
    cli()
