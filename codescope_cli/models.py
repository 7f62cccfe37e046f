"""Record types shared by the store, the analysis engine and the CLI."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .errors import ValidationError

DEPENDENCY_TYPES = ("import", "require", "include", "extend", "inherit")
ISSUE_TYPES = ("bug", "performance", "security", "style", "maintainability")
SEVERITIES = ("low", "medium", "high", "critical")
QUERY_TYPES = ("code", "natural_language", "function", "file")


def _check_choice(field_name: str, value: str, choices: tuple) -> None:
    if value not in choices:
        raise ValidationError(
            f"Invalid {field_name} '{value}'; expected one of: {', '.join(choices)}"
        )


def check_url(value: str) -> None:
    """Reject anything that is not an absolute http(s) URL."""
    parsed = urlparse(value or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Invalid github_url '{value}'; expected an http(s) URL")


@dataclass
class Repository:
    id: int
    github_url: str
    name: str
    owner: str
    default_branch: str = "main"
    description: Optional[str] = None
    last_analyzed: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class CodeFile:
    id: int
    repository_id: int
    path: str
    content: str
    size: int
    language: Optional[str] = None
    ai_summary: Optional[str] = None
    complexity_score: Optional[float] = None
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class ExtractedFunction:
    """A function found by the line scanner, before it is persisted."""
    name: str
    signature: str
    line_start: int
    line_end: int

    def __post_init__(self):
        if self.line_end < self.line_start:
            raise ValidationError(
                f"Function '{self.name}' ends ({self.line_end}) before it starts ({self.line_start})"
            )


@dataclass
class CodeFunction:
    id: int
    file_id: int
    name: str
    signature: str
    line_start: int
    line_end: int
    ai_explanation: Optional[str] = None
    complexity_score: Optional[float] = None
    created_at: Optional[datetime] = None


@dataclass
class CodeDependency:
    repository_id: int
    from_file: str
    to_file: str
    dependency_type: str
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        _check_choice("dependency_type", self.dependency_type, DEPENDENCY_TYPES)


@dataclass
class CodeIssue:
    file_id: int
    issue_type: str
    severity: str
    description: str
    line_number: Optional[int] = None
    suggestion: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        _check_choice("issue_type", self.issue_type, ISSUE_TYPES)
        _check_choice("severity", self.severity, SEVERITIES)


@dataclass
class SearchQuery:
    repository_id: int
    query: str
    query_type: str
    results_count: int
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        _check_choice("query_type", self.query_type, QUERY_TYPES)


@dataclass
class SearchResult:
    file_path: str
    line_number: int
    content_snippet: str
    relevance_score: float
    ai_context: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisAnswer:
    """Structured answer to a free-text question about a repository."""
    summary: str
    key_functions: List[str] = field(default_factory=list)
    potential_issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    related_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GraphNode:
    id: str
    label: str
    type: str


@dataclass
class GraphEdge:
    src: str
    dst: str
    edge_type: str


@dataclass
class DependencyGraph:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        """Serialise to the ``{"nodes": [...], "edges": [...]}`` visualisation shape."""
        return {
            "nodes": [{"id": n.id, "label": n.label, "type": n.type} for n in self.nodes],
            "edges": [{"from": e.src, "to": e.dst, "type": e.edge_type} for e in self.edges],
        }
