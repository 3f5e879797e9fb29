"""
logjson command line: format sample events, list providers, validate log files.
"""

import sys
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from logjson.config import LogJsonConfig, load_config
from logjson.errors import ConfigError, FormattingFailure
from logjson.event import Level, LogEvent, ProcessIdentity
from logjson.logger import DEFAULT_REQUIRED_FIELDS, validate_log_line
from logjson.recorder import build_providers, initialize_json_logging


def _load(config: Optional[str]) -> LogJsonConfig:
    if not config:
        return LogJsonConfig()
    try:
        return load_config(config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


def _parse_mdc(items: Tuple[str, ...]) -> Dict[str, str]:
    mdc = {}
    for item in items:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got '{item}'", param_hint='--mdc')
        mdc[key] = value
    return mdc


@click.group()
def cli():
    """logjson: structured JSON log formatting"""
    pass


@cli.command('format')
@click.option('--config', type=click.Path(exists=True), default=None, help='Path to YAML config')
@click.option('--message', '-m', required=True, help='Log message (may contain %s placeholders)')
@click.option('--level', default='INFO', help='Log level name')
@click.option('--logger', 'logger_name', default='logjson.cli', help='Logger name')
@click.option('--mdc', 'mdc_items', multiple=True, help='MDC entry as key=value (repeatable)')
@click.option('--ndc', 'ndc_items', multiple=True, help='NDC entry, outermost first (repeatable)')
@click.option('--arg', 'arguments', multiple=True, help='Message argument (repeatable)')
def format_event(config, message, level, logger_name, mdc_items, ndc_items, arguments):
    """Format one log event and print it"""
    cfg = _load(config)

    try:
        parsed_level = Level.parse(level)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--level')

    try:
        resolved = message % arguments if arguments else message
    except (TypeError, ValueError):
        resolved = message

    identity = ProcessIdentity.current()
    thread = threading.current_thread()
    event = LogEvent(
        sequence=1,
        level=parsed_level,
        logger_name=logger_name,
        message=message,
        resolved_message=resolved,
        arguments=arguments,
        thread_name=thread.name,
        thread_id=thread.ident or 0,
        mdc=_parse_mdc(mdc_items),
        ndc=ndc_items,
        host_name=identity.host_name,
        process_name=identity.process_name,
        process_id=identity.process_id,
    )

    formatter = initialize_json_logging(cfg)
    try:
        output = formatter.format(event)
    except FormattingFailure as e:
        click.echo(f"Formatting failed: {e}", err=True)
        sys.exit(1)

    click.echo(output, nl=cfg.record_delimiter is None)


@cli.command('providers')
@click.option('--config', type=click.Path(exists=True), default=None, help='Path to YAML config')
def list_providers(config):
    """List the json providers in output order"""
    cfg = _load(config)
    try:
        providers = build_providers(cfg)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if not cfg.enable:
        click.echo("JSON output disabled: pass-through mode writes arguments and MDC only")
    for provider in providers:
        state = 'enabled' if provider.is_enabled() else 'disabled'
        click.echo(f"{provider!r:<50} {state}")


@cli.command('validate')
@click.argument('log_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--require', 'required', multiple=True, help='Required field (repeatable, replaces defaults)')
def validate(log_file, required):
    """Check that every line of a log file is a JSON log document"""
    required_fields = required or DEFAULT_REQUIRED_FIELDS
    invalid = 0
    total = 0

    with Path(log_file).open() as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            total += 1
            if not validate_log_line(line, required_fields):
                invalid += 1
                click.echo(f"{log_file}:{lineno}: invalid log line", err=True)

    click.echo(f"Checked {total} line(s), {invalid} invalid")
    if invalid:
        sys.exit(1)


def main():
    cli()


if __name__ == '__main__':
    main()
