"""Ingest a local source tree into a repository: files plus import edges."""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from . import config
from .errors import NotFoundError, ValidationError
from .models import CodeDependency
from .storage import RecordStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# File-extension <-> language mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".rb": "ruby",
    ".cpp": "cpp",
    ".c": "c",
    ".cs": "c_sharp",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
}

SKIP_DIRS: Set[str] = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs",
    "egg-info", ".codescope", "coverage", ".next",
}

SCRIPT_LANGUAGES = frozenset({"javascript", "typescript"})

# Suffixes tried, in order, when resolving an extension-less relative import
RESOLVE_EXTENSIONS: Tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".json")

IMPORT_FROM_RE = re.compile(r"""^\s*(?:import|export)\s[^'";]*?\bfrom\s+['"]([^'"]+)['"]""", re.MULTILINE)
SIDE_EFFECT_IMPORT_RE = re.compile(r"""^\s*import\s+['"]([^'"]+)['"]""", re.MULTILINE)
REQUIRE_RE = re.compile(r"""\brequire\(\s*['"]([^'"]+)['"]\s*\)""")


def detect_language(path: Path) -> Optional[str]:
    return LANGUAGE_MAP.get(path.suffix.lower())


def iter_source_files(root: Path) -> Iterator[Path]:
    """Yield ingestible files under *root* in a stable order."""
    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file():
            continue
        if any(part in SKIP_DIRS for part in file_path.relative_to(root).parts):
            continue
        if detect_language(file_path) is None:
            continue
        yield file_path


def scan_imports(content: str) -> List[Tuple[str, str]]:
    """Return ``(specifier, dependency_type)`` pairs in source order."""
    found: List[Tuple[int, str, str]] = []
    for regex, dep_type in (
        (IMPORT_FROM_RE, "import"),
        (SIDE_EFFECT_IMPORT_RE, "import"),
        (REQUIRE_RE, "require"),
    ):
        for match in regex.finditer(content):
            found.append((match.start(1), match.group(1), dep_type))
    found.sort(key=lambda item: item[0])
    return [(specifier, dep_type) for _, specifier, dep_type in found]


def resolve_specifier(from_path: str, specifier: str, known_paths: Set[str]) -> Optional[str]:
    """Map a relative import specifier to a repository path.

    Bare package names (``react``, ``lodash/fp``) return ``None``.  When no
    stored file matches, the normalised path is returned unchanged so the
    edge is still recorded.
    """
    if not specifier.startswith("."):
        return None

    base = posixpath.normpath(posixpath.join(posixpath.dirname(from_path), specifier))
    candidates = [base]
    candidates.extend(base + ext for ext in RESOLVE_EXTENSIONS)
    candidates.extend(posixpath.join(base, "index" + ext) for ext in RESOLVE_EXTENSIONS)

    for candidate in candidates:
        if candidate in known_paths:
            return candidate
    return base


def ingest_directory(store: RecordStore, repository_id: int, root: Path) -> Dict[str, int]:
    """Store every source file under *root* and the import edges between them.

    Ingestion is additive: running it twice over the same tree stores a
    second copy of every file and edge.  Nothing is deduplicated by path.

    Returns:
        ``{"files": <stored files>, "dependencies": <stored edges>}``
    """
    if not root.is_dir():
        raise ValidationError(f"Not a directory: {root}")
    if not store.repository_exists(repository_id):
        raise NotFoundError(f"Repository not found with id: {repository_id}")

    stored: List[Tuple[str, str, Optional[str]]] = []
    for file_path in iter_source_files(root):
        size = file_path.stat().st_size
        if size > config.INGEST_MAX_FILE_BYTES:
            logger.warning("Skipping %s: %d bytes exceeds limit", file_path, size)
            continue
        try:
            content = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning("Skipping %s: not valid UTF-8", file_path)
            continue

        rel_path = file_path.relative_to(root).as_posix()
        language = detect_language(file_path)
        store.create_file(repository_id, rel_path, content, language=language, size=size)
        stored.append((rel_path, content, language))
        logger.debug("Ingested %s (%s)", rel_path, language)

    known_paths = {path for path, _, _ in stored}
    deps: List[CodeDependency] = []
    for rel_path, content, language in stored:
        if language not in SCRIPT_LANGUAGES:
            continue
        for specifier, dep_type in scan_imports(content):
            target = resolve_specifier(rel_path, specifier, known_paths)
            if target is not None:
                deps.append(CodeDependency(repository_id, rel_path, target, dep_type))

    store.add_dependencies(deps)
    logger.info(
        "Ingested %d file(s) and %d dependency edge(s) from %s",
        len(stored), len(deps), root,
    )
    return {"files": len(stored), "dependencies": len(deps)}
