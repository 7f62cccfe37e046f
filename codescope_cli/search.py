"""Substring code search with line-level relevance ranking."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from . import config
from .models import CodeFile, SearchResult
from .storage import RecordStore

logger = logging.getLogger(__name__)

BASE_SCORE = 0.5
EXACT_CASE_BOOST = 0.3
LINE_PREFIX_BOOST = 0.2
CONTEXT_LINES = 1


def score_line(line: str, query: str) -> float:
    """Relevance of *line* for *query*; the caller guarantees a case-insensitive hit."""
    score = BASE_SCORE
    if query in line:
        score += EXACT_CASE_BOOST
    if line.strip().lower().startswith(query.lower()):
        score += LINE_PREFIX_BOOST
    return min(1.0, score)


def build_snippet(lines: Sequence[str], index: int, context: int = CONTEXT_LINES) -> str:
    """Return the matched line with *context* lines on each side, clamped to the file."""
    start = max(0, index - context)
    end = min(len(lines) - 1, index + context)
    return "\n".join(lines[start:end + 1])


class CodeSearchEngine:
    """Scan repository files line by line for a query string."""

    def __init__(self, store: RecordStore, max_results: Optional[int] = None):
        self.store = store
        self.max_results = max_results if max_results is not None else config.SEARCH_MAX_RESULTS

    def search(
        self,
        repository_id: int,
        query: str,
        file_types: Optional[Sequence[str]] = None,
        include_ai_analysis: bool = False,
    ) -> List[SearchResult]:
        """Return ranked line hits for *query*, best first.

        Every call is logged to the search analytics table with the number
        of results returned, including calls that find nothing.  An empty
        query matches every line.
        """
        files = self.store.search_files(repository_id, query, languages=file_types or None)

        results: List[SearchResult] = []
        for code_file in files:
            results.extend(self._search_file(code_file, query, include_ai_analysis))

        results.sort(key=lambda r: r.relevance_score, reverse=True)
        results = results[: self.max_results]

        self.store.log_search_query(repository_id, query, "code", len(results))
        logger.info(
            "Search %r in repository %d: %d file(s), %d result(s)",
            query, repository_id, len(files), len(results),
        )
        return results

    def _search_file(
        self, code_file: CodeFile, query: str, include_ai_analysis: bool,
    ) -> List[SearchResult]:
        lowered_query = query.lower()
        lines = code_file.content.split("\n")
        hits: List[SearchResult] = []

        for index, line in enumerate(lines):
            if lowered_query not in line.lower():
                continue
            line_number = index + 1
            hits.append(
                SearchResult(
                    file_path=code_file.path,
                    line_number=line_number,
                    content_snippet=build_snippet(lines, index),
                    relevance_score=score_line(line, query),
                    ai_context=_ai_context(code_file, line_number) if include_ai_analysis else None,
                )
            )
        return hits


def _ai_context(code_file: CodeFile, line_number: int) -> str:
    if code_file.ai_summary:
        return f"From file analysis: {code_file.ai_summary}"
    return f"Match found in {code_file.language or 'unknown'} file at line {line_number}"
