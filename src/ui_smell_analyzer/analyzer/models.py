"""Pydantic models for the pass-through report."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


# ── Shared ──────────────────────────────────────────────────────────────────

class Evidence(BaseModel):
    file: str
    line: int
    snippet: str
    function_name: str | None = None


# ── Findings ────────────────────────────────────────────────────────────────

class OriginReport(BaseModel):
    variable: str
    function: str
    kind: Literal["direct-creation", "collected-from-stream"]
    file: str
    line: int


class Finding(BaseModel):
    rule_id: str = "ReactiveStatePassThrough"
    severity: Literal["error", "warning", "info"] = "warning"
    message: str
    file: str
    line: int
    column: int = 0
    function: str
    parameter: str
    parameter_type: str = ""   # annotation text, "" when untyped
    reactive_kind: str         # ReactiveKind value of the relayed parameter
    origin: OriginReport | None = None
    chain: list[str] = Field(default_factory=list)  # function names, head to consumer
    evidence: list[Evidence] = Field(default_factory=list)


class AnalysisError(BaseModel):
    function: str
    file: str
    message: str


# ── passthrough_report.json ────────────────────────────────────────────────

class PassThroughReport(BaseModel):
    findings: list[Finding] = Field(default_factory=list)
    files_scanned: int = 0
    ui_functions: int = 0
    chains_examined: int = 0
    errors: list[AnalysisError] = Field(default_factory=list)
