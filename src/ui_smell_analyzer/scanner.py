"""Scanner: discovers files, builds the program model and runs the analysis."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from ui_smell_analyzer.analyzer.models import PassThroughReport
from ui_smell_analyzer.analyzer.passthrough import scan_passthrough
from ui_smell_analyzer.config import AnalyzerConfig, load_config
from ui_smell_analyzer.ir import build_program
from ui_smell_analyzer.ir.reactive_registry import ReactiveTypeClassifier
from ui_smell_analyzer.utils import discover_python_files

log = logging.getLogger(__name__)

REPORT_FILENAME = "passthrough_report.json"


@dataclass
class ScanResult:
    """Result of one scan over a project directory."""
    report: PassThroughReport
    config: AnalyzerConfig
    project_path: Path
    report_path: Path | None = None


def scan(
    project_path: Path,
    *,
    config_path: Path | None = None,
    output_dir: Path | None = None,
    min_chain_length: int | None = None,
) -> ScanResult:
    """Run the pass-through scan on a project directory.

    Args:
        project_path: Path to the project to scan.
        config_path: Explicit YAML config. Defaults to .ui-smell.yml in project_path.
        output_dir: Where to write passthrough_report.json. Nothing is written when None.
        min_chain_length: Overrides the configured minimum relay count.

    Returns:
        ScanResult with the report and the effective configuration.

    Raises:
        ConfigError: The configuration file is malformed.
    """
    project_path = project_path.resolve()
    config = load_config(config_path, project_path)
    if min_chain_length is not None:
        config = config.model_copy(update={"min_chain_length": min_chain_length})

    log.info("Scanning %s", project_path)

    py_files = discover_python_files(project_path)
    classifier = ReactiveTypeClassifier(config)
    program = build_program(project_path, py_files, classifier)

    report = scan_passthrough(program, config, files_scanned=len(py_files))
    log.info("Scan complete: %d findings in %d files", len(report.findings), len(py_files))

    result = ScanResult(report=report, config=config, project_path=project_path)
    if output_dir is not None:
        result.report_path = _write_report(report, output_dir)
    return result


def _write_report(report: PassThroughReport, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / REPORT_FILENAME
    path.write_text(json.dumps(report.model_dump(), indent=2))
    log.debug("Report written to %s", path)
    return path
