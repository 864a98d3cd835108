# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Case document view: reassemble one judgment from its stored chunks.
"""

from caselaw_search.services.models import Passage


def build_document_view(document_id: str, passages: list[Passage]) -> dict | None:
    """
    Full-text view of one case

    Chunks are ordered by position (chunks without an index sort last) and
    joined with blank lines. Case metadata is taken from the first chunk.
    Returns None when there are no chunks.
    """
    if not passages:
        return None
    ordered = sorted(passages, key=lambda p: (p.index is None, p.index if p.index is not None else 0))
    first = ordered[0]
    return {
        "documentId": document_id,
        "title": first.title,
        "citation": first.citation,
        "category": first.source_category,
        "date": first.date,
        "sourceId": first.external_id,
        "totalChunks": len(ordered),
        "fullText": "\n\n".join(p.text for p in ordered if p.text),
        "chunks": [{"index": p.index, "text": p.text, "section": p.section_label} for p in ordered],
    }
