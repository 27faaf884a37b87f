"""Render scan results as a Markdown report."""

from __future__ import annotations

from ui_smell_analyzer.scanner import ScanResult

_SEV_ICON = {"error": "[E]", "warning": "[W]", "info": "[I]"}


def render_markdown(result: ScanResult) -> str:
    """Produce a full Markdown report from a ScanResult."""
    sections: list[str] = []
    r = result.report
    name = result.project_path.name

    # ── Title ────────────────────────────────────────────────────────────
    sections.append(f"# Reactive State Pass-Through Report: {name}\n")

    # ── Summary box ──────────────────────────────────────────────────────
    summary_lines = [
        f"- **Project**: `{result.project_path}`",
        f"- **Python files scanned**: {r.files_scanned}",
        f"- **UI-building functions**: {r.ui_functions}",
        f"- **Relay chains examined**: {r.chains_examined}",
        f"- **Minimum chain length**: {result.config.min_chain_length}",
        f"- **Findings**: {len(r.findings)}",
    ]
    if r.errors:
        summary_lines.append(f"- **Analysis errors**: {len(r.errors)}")
    sections.append("\n".join(summary_lines) + "\n")

    if not r.findings:
        sections.append("No reactive state pass-through detected.\n")

    # ── Findings ─────────────────────────────────────────────────────────
    if r.findings:
        sections.append("## Findings\n")
        sections.append("| Severity | Function | Parameter | Type | Origin | Location |")
        sections.append("|---|---|---|---|---|---|")
        for f in r.findings:
            origin = f"`{f.origin.variable}` in `{f.origin.function}`" if f.origin else "-"
            ptype = f"`{f.parameter_type}`" if f.parameter_type else "-"
            sections.append(
                f"| {_SEV_ICON.get(f.severity, '')} {f.severity} | `{f.function}` | `{f.parameter}` "
                f"| {ptype} | {origin} | `{f.file}:{f.line}` |"
            )
        sections.append("")

        sections.append("### Details\n")
        for f in r.findings:
            sections.append(f"#### `{f.function}({f.parameter})`\n")
            sections.append(f"{f.message}\n")
            if f.chain:
                sections.append("Chain: " + " -> ".join(f"`{fn}`" for fn in f.chain) + "\n")
            if f.evidence and f.evidence[0].snippet:
                sections.append(f"```python\n{f.evidence[0].snippet}\n```\n")

    # ── Errors ───────────────────────────────────────────────────────────
    if r.errors:
        sections.append("## Analysis Errors\n")
        for e in r.errors:
            sections.append(f"- `{e.function}` (`{e.file}`): {e.message}")
        sections.append("")

    return "\n".join(sections)
