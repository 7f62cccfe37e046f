"""CodeScope: heuristic code-repository exploration."""

__version__ = "0.1.0"
