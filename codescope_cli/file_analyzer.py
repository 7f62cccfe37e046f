"""File analysis orchestration: summary + complexity + function inventory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from . import config
from .errors import NotFoundError, ValidationError
from .function_extractor import extract_functions
from .heuristics import complexity_score, generate_summary
from .models import CodeFile, ExtractedFunction, Repository
from .storage import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class FileAnalysis:
    """Computed (not yet persisted) analysis of one file."""
    ai_summary: str
    complexity_score: float
    functions: List[ExtractedFunction] = field(default_factory=list)


def analyze_content(content: str, language: Optional[str] = None) -> FileAnalysis:
    """Run every heuristic over *content* without touching the store."""
    return FileAnalysis(
        ai_summary=generate_summary(content, language),
        complexity_score=complexity_score(content),
        functions=extract_functions(content, language),
    )


class FileAnalyzer:
    """Analyze stored files and persist the derived facts.

    Re-analysis is additive by default: each run appends a fresh function
    batch next to the earlier ones.  Pass ``replace_functions=True`` (or set
    ``[analysis] replace_functions`` in the config file) to swap the previous
    batch out instead.
    """

    def __init__(self, store: RecordStore, replace_functions: Optional[bool] = None):
        self.store = store
        if replace_functions is None:
            replace_functions = config.REPLACE_FUNCTIONS_ON_REANALYZE
        self.replace_functions = replace_functions

    def analyze(self, file_id: int) -> CodeFile:
        """Analyze one file and return its updated record.

        Raises:
            ValidationError: if *file_id* is not a positive integer.
            NotFoundError: if no file with *file_id* exists.
        """
        if not isinstance(file_id, int) or file_id <= 0:
            raise ValidationError(f"File id must be a positive integer, got {file_id!r}")

        code_file = self.store.get_file(file_id)
        if code_file is None:
            raise NotFoundError(f"Code file with ID {file_id} not found")

        analysis = analyze_content(code_file.content, code_file.language)

        updated = self.store.update_file(
            file_id,
            ai_summary=analysis.ai_summary,
            complexity_score=analysis.complexity_score,
            last_updated=datetime.now(),
        )
        self._store_functions(file_id, analysis.functions)

        logger.info(
            "Analyzed %s: complexity=%.2f, %d function(s)",
            code_file.path, analysis.complexity_score, len(analysis.functions),
        )
        return updated

    def _store_functions(self, file_id: int, functions: List[ExtractedFunction]) -> None:
        if self.replace_functions:
            self.store.replace_functions(file_id, functions)
        else:
            self.store.insert_functions(file_id, functions)

    def analyze_repository(self, repository_id: int) -> Repository:
        """Analyze every file of a repository and stamp ``last_analyzed``."""
        if not self.store.repository_exists(repository_id):
            raise NotFoundError(f"Repository not found with id: {repository_id}")

        files = self.store.list_files_by_repository(repository_id)
        for code_file in files:
            self.analyze(code_file.id)

        logger.info("Analyzed %d file(s) in repository %d", len(files), repository_id)
        return self.store.mark_repository_analyzed(repository_id, datetime.now())
