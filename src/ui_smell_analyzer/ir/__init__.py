"""Program model package for ui-smell-analyzer.

Provides:
    build_program(workspace, py_files, classifier) -> Program
"""

from __future__ import annotations

import logging
from pathlib import Path

from ui_smell_analyzer.ir.program import Program
from ui_smell_analyzer.ir.python_frontend import analyze_file
from ui_smell_analyzer.ir.reactive_registry import ReactiveTypeClassifier

log = logging.getLogger(__name__)


def build_program(
    workspace: Path,
    py_files: list[Path],
    classifier: ReactiveTypeClassifier,
) -> Program:
    """Build a Program from a list of Python files.

    Args:
        workspace: Root directory (for computing relative paths and module names).
        py_files: Python files to parse.
        classifier: Supplies the UI-building marker vocabulary.

    Returns:
        Program with every parseable module registered.
    """
    program = Program()

    for fpath in sorted(py_files):
        try:
            analyze_file(fpath, workspace, classifier, program)
        except Exception:
            log.debug("Frontend failed for %s", fpath, exc_info=True)

    log.info(
        "Program built: %d declarations (%d UI-building) from %d files",
        len(program), len(program.ui_functions()), len(py_files),
    )

    return program


__all__ = ["build_program", "Program"]
