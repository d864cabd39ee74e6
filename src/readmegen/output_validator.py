"""Structural sanity checks for generated README markdown.

A decision function, not a gate: ``validate()`` never raises. Callers
decide whether a failed result is retried (non-streaming path) or only
logged (streaming path, where the user has already seen the content).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Problems reported by validate(), in check order.
TOO_SHORT = "too short"
MISSING_HEADERS = "missing headers"
UNCLOSED_CODE_BLOCK = "unclosed code block"
META_COMMENTARY_LEAK = "meta-commentary leak"

MIN_LENGTH = 200
MIN_HEADINGS = 2
# Only the opening of the document is scanned for chatty preambles.
META_SCAN_WINDOW = 500

# A markdown heading: 1-3 '#', whitespace, then text, on its own line.
_HEADING_RE = re.compile(r"^#{1,3}\s+.+$", re.MULTILINE)
_FENCE = "```"
_META_COMMENTARY_RE = re.compile(
    r"here is|i have generated|i've created|below is",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one candidate document."""

    valid: bool
    problems: tuple[str, ...] = ()


def validate(document: str) -> ValidationResult:
    """Run every check on *document* and collect all problems found."""
    problems: list[str] = []

    if len(document) < MIN_LENGTH:
        problems.append(TOO_SHORT)

    if len(_HEADING_RE.findall(document)) < MIN_HEADINGS:
        problems.append(MISSING_HEADERS)

    if document.count(_FENCE) % 2 != 0:
        problems.append(UNCLOSED_CODE_BLOCK)

    if _META_COMMENTARY_RE.search(document[:META_SCAN_WINDOW]):
        problems.append(META_COMMENTARY_LEAK)

    return ValidationResult(valid=not problems, problems=tuple(problems))


def format_problems(result: ValidationResult) -> str:
    """Join problems into one line for error messages and logs."""
    return ", ".join(result.problems)
