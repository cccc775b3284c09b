"""
Provision Segmenter - Split raw Swedish statute text into provisions
====================================================================

Pure-logic module. No I/O dependencies.

Handles:
- Chaptered statutes: "3 kap." heading followed by "5 §" -> provision_ref "3:5"
- Flat statutes: "5 §" -> provision_ref "5"
- Inserted provisions: "5 a §" -> provision_ref "5 a"
- One rubrik (heading) line directly after a section marker

Usage:
    from lagrum.parsers.provision_segmenter import segment_statute

    provisions = segment_statute(raw_text)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..models.legal import Provision, ProvisionRef, normalize_section

# ── Compiled Regex Patterns ──────────────────────────────────────────

# Chapter heading: "1 kap. Inledande bestämmelser"
_CHAPTER_RE = re.compile(r"^(\d+)\s*kap\.\s*(.*)")

# Same heading, searched across a whole text
_CHAPTER_ANYWHERE_RE = re.compile(r"^\s*\d+\s*kap\.", re.MULTILINE)

# Section start: "5 §", "5 a § Text...", "12 §Text"
_SECTION_RE = re.compile(r"^(\d+(?:\s*[a-z])?)\s*§\s*(.*)")

# Heading lines start with an uppercase letter, Swedish alphabet included
_HEADING_START_RE = re.compile(r"^[A-ZÅÄÖÉ]")

_SENTENCE_ENDINGS = (".", ",", ";", "!", "?")

HEADING_MAX_LENGTH = 80


@dataclass
class _SegmenterState:
    chapter: Optional[str] = None
    section: Optional[str] = None
    title: Optional[str] = None
    content: list[str] = field(default_factory=list)
    provisions: list[Provision] = field(default_factory=list)

    def flush(self) -> None:
        """Commit the pending provision if it has a section and a body."""
        if self.section and self.content:
            ref = ProvisionRef(section=self.section, chapter=self.chapter)
            self.provisions.append(
                Provision(
                    provision_ref=str(ref),
                    chapter=self.chapter,
                    section=self.section,
                    title=self.title,
                    content=" ".join(self.content),
                )
            )
        self.section = None
        self.title = None
        self.content = []


def _is_heading(line: str, max_length: int) -> bool:
    # Rubriker are bare phrases; a line ending a sentence is body text
    return (
        bool(_HEADING_START_RE.match(line))
        and len(line) < max_length
        and not line.endswith(_SENTENCE_ENDINGS)
    )


def segment_lines(lines: Iterable[str], heading_max_length: int = HEADING_MAX_LENGTH) -> list[Provision]:
    """
    Segment an ordered sequence of statute lines into provisions.

    A section with no body (a bare "4 §" line followed by the next marker)
    yields no record.
    """
    state = _SegmenterState()

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue

        chapter_match = _CHAPTER_RE.match(line)
        if chapter_match:
            state.flush()
            state.chapter = chapter_match.group(1)
            continue

        section_match = _SECTION_RE.match(line)
        if section_match:
            state.flush()
            state.section = normalize_section(section_match.group(1))
            remainder = section_match.group(2).strip()
            if remainder:
                state.content.append(remainder)
            continue

        if (
            state.section
            and not state.content
            and state.title is None
            and _is_heading(line, heading_max_length)
        ):
            state.title = line
            continue

        if state.section:
            state.content.append(line)

    state.flush()
    return state.provisions


def segment_statute(text: str, heading_max_length: int = HEADING_MAX_LENGTH) -> list[Provision]:
    """
    Parse raw statute text into structured provisions.

    Args:
        text: Full statute text
        heading_max_length: Lines at or above this length are never headings

    Returns:
        Provisions in document order
    """
    if not text:
        return []
    return segment_lines(text.splitlines(), heading_max_length=heading_max_length)


def is_chaptered_statute(text: str) -> bool:
    """True iff any line of ``text`` is a chapter heading."""
    return bool(text) and _CHAPTER_ANYWHERE_RE.search(text) is not None
