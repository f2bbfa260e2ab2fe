# === FILE: access_scout/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point of the AccessScout audit engine.

Commands:
  scan      Crawl the configured site, run the analyzers and write the results
  config    Print the validated configuration

Common options:
  --config PATH       YAML/JSON config (default: configs/default.yaml)
  --start-url URL     Override start_url
  --limit INT         Override max_pages
  --max-depth INT     Override max_depth
  --output DIR        Override output_dir
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file in addition to stdout
  --log-format FORMAT Logging format string

scan options:
  --scan-timeout SEC  Timeout for the whole crawl (seconds)
  --pretty            Indent the printed summary

Example:
  access-scout --config configs/default.yaml --limit 20 scan --pretty
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from access_scout import __version__
from access_scout.aggregator import ScanResult
from access_scout.config import CrawlConfig, KNOWN_MODULES, load_config
from access_scout.engine import Engine
from access_scout.errors import ConfigValidationFailure
from access_scout.logger import init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


def run_scan(cfg: CrawlConfig, timeout=None) -> ScanResult:
    """Run one audit and write its result files."""
    return Engine(cfg).start_scan(timeout=timeout)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="AccessScout, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the YAML/JSON configuration (default: configs/default.yaml).",
)
@click.option("--start-url", "-u", "start_url", default=None, help="Seed URL (override start_url).")
@click.option("--limit", "-l", "limit", type=click.IntRange(min=1), default=None, help="Override max_pages.")
@click.option("--max-depth", "max_depth", type=click.IntRange(min=0), default=None, help="Override max_depth.")
@click.option(
    "--module", "-m", "modules",
    multiple=True,
    type=click.Choice(list(KNOWN_MODULES)),
    help="Enable only these analyzers (repeatable).",
)
@click.option(
    "--output", "-o", "output_dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Override output_dir.",
)
@click.option(
    "--log-level", "log_level",
    default="INFO", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Logging level.",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Log file (stdout only if omitted).",
)
@click.option(
    "--log-format", "log_format",
    default="%(asctime)s %(levelname)s %(message)s",
    show_default=True,
    help="Logging format string.",
)
@click.pass_context
def cli(ctx, config_path, start_url, limit, max_depth, modules, output_dir, log_level, log_file, log_format):
    """AccessScout command group."""
    init_logging(level=log_level, log_file=str(log_file) if log_file else None, log_format=log_format)
    overrides = dict(
        start_url=start_url,
        max_pages=limit,
        max_depth=max_depth,
        modules=list(modules) if modules else None,
        output_dir=output_dir,
    )
    try:
        cfg = load_config(config_path, **overrides)
    except (FileNotFoundError, ConfigValidationFailure) as e:
        print_error(f"Cannot load configuration: {e}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command("scan", context_settings=CONTEXT_SETTINGS)
@click.option("--scan-timeout", "scan_timeout", type=float, default=None, help="Timeout of the whole crawl (seconds).")
@click.option("--pretty", is_flag=True, help="Indent the printed JSON summary.")
@click.pass_context
def scan(ctx, scan_timeout, pretty):
    """Crawl, analyze and write the result files to output_dir."""
    cfg = ctx.obj["config"]
    click.echo(f"Starting scan of {cfg.start}", err=True)
    try:
        result = run_scan(cfg, timeout=scan_timeout)
    except asyncio.TimeoutError:
        print_error(f"Scan did not finish within {scan_timeout} seconds")
    except ConfigValidationFailure as e:
        print_error(f"Invalid configuration: {e}")
    except Exception as e:
        print_error(f"Scan failed: {e}")

    click.echo(result.json(pretty=pretty))


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Print the validated configuration as JSON."""
    cfg = ctx.obj["config"]
    click.echo(json.dumps(cfg.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
