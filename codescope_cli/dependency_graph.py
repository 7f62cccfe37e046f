"""File-level dependency graph built from stored dependency edges."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from .models import DependencyGraph, GraphEdge, GraphNode
from .storage import RecordStore

logger = logging.getLogger(__name__)

CONFIG_EXTENSIONS = frozenset({"json", "yaml", "yml"})
DOCUMENTATION_EXTENSIONS = frozenset({"md", "txt", "rst"})

# (basename substrings, node type), checked in order after the extension rules
NAME_RULES = (
    (("test", "spec"), "test"),
    (("config", "setting"), "config"),
    (("util", "helper", "lib"), "utility"),
    (("main", "index", "app"), "entry"),
)

DEFAULT_NODE_TYPE = "file"


def basename(path: str) -> str:
    """Segment after the last ``/``, or the whole path."""
    return path.rsplit("/", 1)[-1]


def extension(path: str) -> str:
    """Lowercased text after the last ``.`` of the basename; empty without one."""
    name = basename(path)
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def classify_path(path: str, languages: Optional[Mapping[str, str]] = None) -> str:
    """Coarse node type for *path*; the first matching rule wins.

    *languages* maps stored file paths to their language and is consulted
    only when no extension or name rule applies.
    """
    ext = extension(path)
    if ext in CONFIG_EXTENSIONS:
        return "config"
    if ext in DOCUMENTATION_EXTENSIONS:
        return "documentation"

    name = basename(path).lower()
    for markers, node_type in NAME_RULES:
        if any(marker in name for marker in markers):
            return node_type

    language = (languages or {}).get(path)
    if language:
        return language.lower()
    return DEFAULT_NODE_TYPE


class DependencyGraphBuilder:
    """Turn a repository's dependency edges into nodes + edges."""

    def __init__(self, store: RecordStore):
        self.store = store

    def build(self, repository_id: int) -> DependencyGraph:
        """Build the graph for *repository_id*.

        Only paths that appear in at least one edge become nodes; stored
        files without edges are left out, and edge paths without a stored
        file are kept.  An unknown repository yields an empty graph.
        """
        deps = self.store.list_dependencies(repository_id)

        languages: Dict[str, str] = {}
        for code_file in self.store.list_files_by_repository(repository_id):
            if code_file.language and code_file.path not in languages:
                languages[code_file.path] = code_file.language

        ordered_paths: List[str] = []
        for dep in deps:
            ordered_paths.append(dep.from_file)
            ordered_paths.append(dep.to_file)

        nodes = [
            GraphNode(id=path, label=basename(path), type=classify_path(path, languages))
            for path in dict.fromkeys(ordered_paths)
        ]
        edges = [GraphEdge(dep.from_file, dep.to_file, dep.dependency_type) for dep in deps]

        logger.debug(
            "Dependency graph for repository %d: %d node(s), %d edge(s)",
            repository_id, len(nodes), len(edges),
        )
        return DependencyGraph(nodes=nodes, edges=edges)
