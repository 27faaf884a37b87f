"""ui-smell-analyzer: reactive state pass-through detection for declarative UI code."""

__version__ = "0.1.0"
