"""Error types raised by the CodeScope engine."""

from __future__ import annotations


class CodeScopeError(Exception):
    """Base class for all CodeScope errors."""


class NotFoundError(CodeScopeError):
    """A referenced file or repository does not exist in the store."""


class ValidationError(CodeScopeError, ValueError):
    """Input has the wrong shape; raised before any heuristic runs."""
