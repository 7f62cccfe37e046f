"""Line-oriented function extraction for JavaScript / TypeScript sources.

This is a pattern matcher, not a parser.  Two declaration shapes are
recognised per line:

* named declarations: ``[export ][async ]function name(...)``
* arrow functions bound to a variable: ``[export ]const|let|var name = [async ](...) =>``

Named declarations get their end line from a brace-balance scan; arrow
functions are treated as single-line.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, List, Optional, Sequence

from .models import ExtractedFunction

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = frozenset({"javascript", "typescript"})

NAMED_FUNCTION_RE = re.compile(r"^(?:export\s+)?(?:async\s+)?function\s+([\w$]+)\s*\([^)]*\)")
ARROW_FUNCTION_RE = re.compile(
    r"^(?:export\s+)?(?:const|let|var)\s+([\w$]+)\s*=\s*(?:async\s+)?\([^)]*\)\s*=>"
)


def supports_language(language: Optional[str]) -> bool:
    """Files without a language are scanned as if they were JavaScript."""
    if not language:
        return True
    return language.lower() in SUPPORTED_LANGUAGES


def find_block_end(lines: Sequence[str], start_index: int) -> int:
    """Return the 1-based line where the block opened at *start_index* closes.

    Braces are balanced from ``lines[start_index]`` onward; the first line on
    which the balance falls back to zero after going positive is the end.
    When the block never opens or never closes, the start line is returned.
    """
    balance = 0
    opened = False
    for index in range(start_index, len(lines)):
        for char in lines[index]:
            if char == "{":
                balance += 1
                opened = True
            elif char == "}":
                balance -= 1
            if opened and balance == 0:
                return index + 1
    return start_index + 1


def iter_functions(content: str, language: Optional[str] = None) -> Iterator[ExtractedFunction]:
    """Yield functions found in *content* in source order.

    Both patterns are tried on every line, so a line matching both yields
    two entries.  Nothing is deduplicated.
    """
    if not supports_language(language):
        logger.debug("Skipping function extraction for language %r", language)
        return

    lines = content.split("\n")
    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        line_start = index + 1

        named = NAMED_FUNCTION_RE.match(line)
        if named:
            yield ExtractedFunction(
                name=named.group(1),
                signature=line,
                line_start=line_start,
                line_end=find_block_end(lines, index),
            )

        arrow = ARROW_FUNCTION_RE.match(line)
        if arrow:
            yield ExtractedFunction(
                name=arrow.group(1),
                signature=line,
                line_start=line_start,
                line_end=line_start,
            )


def extract_functions(content: str, language: Optional[str] = None) -> List[ExtractedFunction]:
    """Materialised form of :func:`iter_functions`."""
    return list(iter_functions(content, language))
