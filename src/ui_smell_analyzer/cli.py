"""CLI entry point for ui-smell-analyzer."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from ui_smell_analyzer import __version__
from ui_smell_analyzer.config import ConfigError
from ui_smell_analyzer.scanner import ScanResult, scan


@click.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, resolve_path=True))
@click.option(
    "-f", "--format", "fmt",
    type=click.Choice(["md", "json"], case_sensitive=False),
    default="md",
    help="Output format (default: md).",
)
@click.option(
    "-o", "--output",
    type=click.Path(resolve_path=True),
    default=None,
    help="Output file path. Defaults to stdout.",
)
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    default=None,
    help="YAML config file. Defaults to <path>/.ui-smell.yml when present.",
)
@click.option(
    "--min-chain-length",
    type=click.IntRange(min=1),
    default=None,
    help="Minimum number of relay layers before a chain is reported (default: 2).",
)
@click.option(
    "--json-dir",
    type=click.Path(resolve_path=True),
    default=None,
    help="Also write passthrough_report.json into this directory.",
)
@click.option(
    "--fail-on-findings", is_flag=True, default=False,
    help="Exit with status 1 when any finding is reported.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose logging.")
@click.version_option(version=__version__)
def main(
    path: str,
    fmt: str,
    output: str | None,
    config_path: str | None,
    min_chain_length: int | None,
    json_dir: str | None,
    fail_on_findings: bool,
    verbose: bool,
) -> None:
    """Find reactive state that is passed through UI layers without being used."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )

    try:
        result = scan(
            Path(path),
            config_path=Path(config_path) if config_path else None,
            output_dir=Path(json_dir) if json_dir else None,
            min_chain_length=min_chain_length,
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if fmt == "json":
        _output_json(result, output)
    else:
        _output_md(result, output)

    if fail_on_findings and result.report.findings:
        sys.exit(1)


def _output_md(result: ScanResult, output: str | None) -> None:
    from ui_smell_analyzer.render.markdown import render_markdown
    md = render_markdown(result)
    if output:
        Path(output).write_text(md)
        click.echo(f"Report written to {output}")
    else:
        click.echo(md)


def _output_json(result: ScanResult, output: str | None) -> None:
    text = json.dumps(result.report.model_dump(), indent=2)
    if output:
        Path(output).write_text(text)
        click.echo(f"JSON report written to {output}")
    else:
        click.echo(text)


if __name__ == "__main__":
    main()
