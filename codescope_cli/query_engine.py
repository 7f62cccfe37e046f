"""Keyword-driven question answering over stored files, functions and issues.

No language model is involved.  A question is reduced to keywords, the
keywords select files, functions and issues from the store, and fixed
templates turn the selection into a summary plus suggestions.
"""

from __future__ import annotations

import logging
import re
from typing import FrozenSet, List, Optional, Sequence, Tuple

from . import config
from .errors import NotFoundError
from .models import AnalysisAnswer, CodeFile, CodeFunction
from .storage import RecordStore

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 15
MAX_KEY_FUNCTIONS = 5
MAX_RELATED_FILES = 5
MAX_SUGGESTIONS = 5
MIN_KEYWORD_LENGTH = 3

STOP_WORDS: FrozenSet[str] = frozenset({
    "what", "where", "when", "why", "how", "who", "which", "can", "could",
    "should", "would", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will",
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "up", "about", "into", "through", "during",
    "before", "after", "above", "below", "between", "among", "this", "that",
    "these", "those", "i", "me", "my", "myself", "we", "our", "ours", "ourselves",
    "you", "your", "yours", "yourself", "yourselves",
})

# (trigger tokens, related terms appended when any trigger is present)
KEYWORD_EXPANSIONS: Tuple[Tuple[FrozenSet[str], Tuple[str, ...]], ...] = (
    (frozenset({"authentication", "authenticate"}),
     ("auth", "login", "user", "validate", "credential")),
    (frozenset({"security", "secure"}),
     ("vulnerability", "validation", "sanitize", "xss", "injection")),
    (frozenset({"performance", "optimize"}),
     ("slow", "speed", "efficiency", "complexity")),
)

# (substrings of the lowercased question, suggestions added when any is present)
TOPIC_SUGGESTIONS: Tuple[Tuple[Tuple[str, ...], Tuple[str, str]], ...] = (
    (("performance", "slow", "optimize"), (
        "Review code complexity scores and consider optimization opportunities",
        "Look for inefficient algorithms or database queries",
    )),
    (("error", "bug", "issue"), (
        "Check error handling patterns in the identified files",
        "Add comprehensive unit tests for critical functions",
    )),
    (("security", "secure", "vulnerability"), (
        "Conduct a security audit of input validation and authentication",
        "Review data sanitization practices",
    )),
)

ISSUE_SUGGESTIONS = (
    "Address the identified code issues for better code quality",
    "Prioritize high and critical severity issues first",
)
MISSING_SUMMARY_SUGGESTION = "Generate AI summaries for files to improve future query accuracy"
FALLBACK_SUGGESTIONS = (
    "Review the identified files for potential improvements",
    "Consider adding more detailed documentation to the codebase",
)
NO_FILES_SUGGESTIONS = (
    "Consider adding more detailed file paths or context to your query",
    "Try using specific function names or file names in your question",
)

_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)


def extract_keywords(question: str) -> List[str]:
    """Reduce *question* to at most 15 search keywords, in discovery order."""
    tokens = [
        word
        for word in _NON_WORD_RE.sub(" ", question.lower()).split()
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    ]

    expanded = list(tokens)
    token_set = set(tokens)
    for triggers, related in KEYWORD_EXPANSIONS:
        if token_set & triggers:
            expanded.extend(related)

    return list(dict.fromkeys(expanded))[:MAX_KEYWORDS]


def _function_matches(func: CodeFunction, keywords: Sequence[str]) -> bool:
    name = func.name.lower()
    signature = func.signature.lower()
    explanation = (func.ai_explanation or "").lower()
    return any(k in name or k in signature or k in explanation for k in keywords)


def prioritize_functions(functions: Sequence[CodeFunction], keywords: Sequence[str]) -> List[str]:
    """Names of up to five functions, keyword matches first."""
    if not keywords:
        return [f.name for f in functions[:MAX_KEY_FUNCTIONS]]
    matching = [f for f in functions if _function_matches(f, keywords)]
    others = [f for f in functions if not _function_matches(f, keywords)]
    return [f.name for f in (matching + others)[:MAX_KEY_FUNCTIONS]]


def build_summary(
    question: str,
    files: Sequence[CodeFile],
    functions: Sequence[str],
    issues: Sequence[str],
) -> str:
    if not files:
        return (
            f'No relevant code files found for the question: "{question}". '
            "The repository may not contain code related to your query."
        )

    summary = f'Analysis for question: "{question}". '
    summary += f"Found {len(files)} relevant code file(s) "
    if functions:
        summary += f"with {len(functions)} key function(s) "
    if issues:
        summary += f"and {len(issues)} identified issue(s) "
    summary += "that may be related to your query."

    languages = list(dict.fromkeys(f.language for f in files if f.language))
    if languages:
        summary += f" The code is primarily written in: {', '.join(languages)}."
    return summary


def build_suggestions(
    question: str, files: Sequence[CodeFile], issues: Sequence[str],
) -> List[str]:
    if not files:
        return list(NO_FILES_SUGGESTIONS)

    lowered = question.lower()
    suggestions: List[str] = []
    for markers, topic_suggestions in TOPIC_SUGGESTIONS:
        if any(marker in lowered for marker in markers):
            suggestions.extend(topic_suggestions)

    if issues:
        suggestions.extend(ISSUE_SUGGESTIONS)

    if any(not f.ai_summary for f in files):
        suggestions.append(MISSING_SUMMARY_SUGGESTION)

    if not suggestions:
        suggestions.extend(FALLBACK_SUGGESTIONS)

    return suggestions[:MAX_SUGGESTIONS]


class QueryEngine:
    """Answer free-text questions about one repository."""

    def __init__(
        self,
        store: RecordStore,
        max_files: Optional[int] = None,
        max_functions: Optional[int] = None,
        max_issues: Optional[int] = None,
    ):
        self.store = store
        self.max_files = max_files if max_files is not None else config.QUERY_MAX_FILES
        self.max_functions = max_functions if max_functions is not None else config.QUERY_MAX_FUNCTIONS
        self.max_issues = max_issues if max_issues is not None else config.QUERY_MAX_ISSUES

    def answer(
        self,
        repository_id: int,
        question: str,
        context_files: Optional[Sequence[str]] = None,
    ) -> AnalysisAnswer:
        """Build a structured answer to *question*.

        A question without usable keywords falls back to the first files
        of the repository.

        Raises:
            NotFoundError: if the repository does not exist.
        """
        if not self.store.repository_exists(repository_id):
            raise NotFoundError(f"Repository not found with id: {repository_id}")

        keywords = extract_keywords(question)
        logger.debug("Keywords for %r: %s", question, keywords)

        files = self._select_files(repository_id, keywords, context_files)
        file_ids = [f.id for f in files]

        key_functions: List[str] = []
        potential_issues: List[str] = []
        if files:
            functions = self.store.list_functions_by_files(file_ids, limit=self.max_functions)
            key_functions = prioritize_functions(functions, keywords)
            issues = self.store.list_issues_by_files(file_ids, limit=self.max_issues)
            potential_issues = [f"{i.issue_type}: {i.description}" for i in issues]

        answer = AnalysisAnswer(
            summary=build_summary(question, files, key_functions, potential_issues),
            key_functions=key_functions,
            potential_issues=potential_issues,
            suggestions=build_suggestions(question, files, potential_issues),
            related_files=[f.path for f in files[:MAX_RELATED_FILES]],
        )

        self.store.log_search_query(
            repository_id, question, "natural_language", len(answer.related_files),
        )
        logger.info(
            "Answered question for repository %d using %d file(s)", repository_id, len(files),
        )
        return answer

    def _select_files(
        self,
        repository_id: int,
        keywords: Sequence[str],
        context_files: Optional[Sequence[str]],
    ) -> List[CodeFile]:
        if context_files:
            return self.store.find_files_by_path_hints(repository_id, context_files, self.max_files)
        if keywords:
            return self.store.find_files_by_keywords(repository_id, keywords, self.max_files)
        return self.store.list_files_by_repository(repository_id, limit=self.max_files)
