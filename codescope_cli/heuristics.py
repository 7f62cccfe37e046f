"""Whole-file heuristics: brace depth, complexity score and file summary.

Everything here is a pure function of the input string.  Matching is plain
substring / regex work on the raw text, so keywords inside comments or string
literals count exactly like real code.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

# Literal control-flow markers, each occurrence adds one point
CONTROL_FLOW_PATTERNS: Tuple[str, ...] = ("if (", "for (", "while (", "switch (", "catch (")

BRACE_DEPTH_WEIGHT = 0.5
NAMED_FUNCTION_WEIGHT = 0.3

_NAMED_FUNCTION_RE = re.compile(r"function\s+\w+")

# (markers, sentence) in the order the sentences are appended
SUMMARY_SIGNALS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("import", "require"), "It includes external dependencies."),
    (("export", "module.exports"), "It exports functionality for use by other modules."),
    (("class ", "interface "), "It defines classes or interfaces."),
    (("function ", "const ", "let "), "It contains function definitions."),
)


def max_brace_depth(content: str) -> int:
    """Return the deepest ``{``/``}`` nesting reached while scanning *content*.

    Unbalanced closing braces may drive the running depth below zero; the
    scan carries on and only the maximum is reported.
    """
    depth = 0
    deepest = 0
    for char in content:
        if char == "{":
            depth += 1
            if depth > deepest:
                deepest = depth
        elif char == "}":
            depth -= 1
    return deepest


def complexity_score(content: str) -> float:
    """Estimate complexity of *content*; always >= 1, rounded to 2 decimals."""
    score = 1.0
    for pattern in CONTROL_FLOW_PATTERNS:
        score += content.count(pattern)
    score += BRACE_DEPTH_WEIGHT * max_brace_depth(content)
    score += NAMED_FUNCTION_WEIGHT * len(_NAMED_FUNCTION_RE.findall(content))
    return round(score, 2)


def generate_summary(content: str, language: Optional[str] = None) -> str:
    """Build the templated one-paragraph description of a file."""
    line_count = len(content.split("\n"))
    parts: List[str] = [f"This {language or 'code'} file contains {line_count} lines."]

    for markers, sentence in SUMMARY_SIGNALS:
        if any(marker in content for marker in markers):
            parts.append(sentence)

    return " ".join(parts).rstrip()
