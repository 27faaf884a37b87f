"""Pass-through analysis over the UI-building call graph."""

from ui_smell_analyzer.analyzer.passthrough import RULE_ID, scan_passthrough

__all__ = ["RULE_ID", "scan_passthrough"]
