"""
Cross-Reference Extractor - intra-corpus references in provision text
=====================================================================

Detects:
- "lagen (2018:218)" -> reference to another (or the same) statute
- "3 kap. 5 §"       -> reference to a provision, normalised to "3:5"

Emission order is fixed: all SFS references in text order, then all
provision references in text order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from ..models.legal import CrossReference, CrossRefType, normalize_section


@dataclass
class ExtractedReference:
    """A reference found in provision text, before it is tied to a source."""

    raw_text: str
    target_sfs: Optional[str] = None  # e.g. "2018:218"
    target_provision_ref: Optional[str] = None  # e.g. "3:5"


# ── Compiled Regex Patterns ──────────────────────────────────────────

# "(2018:218)" anywhere in the text
_SFS_REF_RE = re.compile(r"\((\d{4}:\d+)\)")

# "3 kap. 5 §", "3 kap. 5 a §"
_PROVISION_REF_RE = re.compile(r"(\d+)\s*kap\.\s*(\d+(?:\s*[a-z])?)\s*§")


def extract_cross_references(text: str) -> list[ExtractedReference]:
    """
    Extract cross-references from one provision's content.

    Each distinct SFS number and each distinct provision ref is reported once.
    """
    if not text:
        return []

    refs: list[ExtractedReference] = []
    seen: set[str] = set()

    for match in _SFS_REF_RE.finditer(text):
        sfs_nr = match.group(1)
        key = f"sfs:{sfs_nr}"
        if key in seen:
            continue
        seen.add(key)
        refs.append(ExtractedReference(raw_text=match.group(0), target_sfs=sfs_nr))

    for match in _PROVISION_REF_RE.finditer(text):
        ref = f"{match.group(1)}:{normalize_section(match.group(2))}"
        key = f"prov:{ref}"
        if key in seen:
            continue
        seen.add(key)
        refs.append(ExtractedReference(raw_text=match.group(0), target_provision_ref=ref))

    return refs


def build_cross_references(
    source_document_id: str,
    source_provision_ref: Optional[str],
    refs: Iterable[ExtractedReference],
) -> list[CrossReference]:
    """
    Turn extracted references into persisted cross-reference edges.

    An SFS reference points at that statute as a whole; a provision
    reference points back into the source statute. A bare reference to the
    source statute itself carries no information and is dropped.
    """
    edges: list[CrossReference] = []
    for ref in refs:
        if ref.target_sfs:
            if ref.target_sfs == source_document_id:
                continue
            edges.append(
                CrossReference(
                    source_document_id=source_document_id,
                    source_provision_ref=source_provision_ref,
                    target_document_id=ref.target_sfs,
                    ref_type=CrossRefType.REFERENCES,
                )
            )
        elif ref.target_provision_ref:
            if ref.target_provision_ref == source_provision_ref:
                continue
            edges.append(
                CrossReference(
                    source_document_id=source_document_id,
                    source_provision_ref=source_provision_ref,
                    target_document_id=source_document_id,
                    target_provision_ref=ref.target_provision_ref,
                    ref_type=CrossRefType.REFERENCES,
                )
            )
    return edges
