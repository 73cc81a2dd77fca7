"""Text metrics and page estimation for documents.

The snapshot service needs a page count for every document it captures.
Real pagination belongs to the editor; this module provides a layout-aware
estimate from the document's plain text and page configuration:

  - usable area = paper size minus margins
  - characters per line from an average glyph width of half the font size
  - lines per page from font size times line spacing
  - paragraph spacing and first-line indent consume extra lines/characters
  - a table of contents adds one page

Content is read from the editor JSON when present, falling back to the
plain text column.
"""

import json
import logging
import math
import re
from typing import Any, Callable, Optional

from ..models.document import PAPER_DIMENSIONS, DocumentStateMixin, PaperSize

logger = logging.getLogger(__name__)

# Average glyph width relative to the font size for proportional body fonts
AVERAGE_GLYPH_WIDTH_RATIO = 0.5

_BLOCK_NODES = frozenset({
    "paragraph", "heading", "listItem", "taskItem",
    "codeBlock", "blockquote", "tableRow",
})

_WORD_RE = re.compile(r"\S+")

PageEstimator = Callable[[DocumentStateMixin], int]


def extract_plain_text(content_json: Optional[str], fallback: str = "") -> str:
    """Return the plain text of editor JSON content, or ``fallback``.

    Block nodes end with a newline so paragraph structure survives.
    Unparseable or empty JSON yields the fallback.
    """
    if not content_json:
        return fallback or ""
    try:
        doc = json.loads(content_json)
    except (TypeError, ValueError):
        logger.debug("Content is not editor JSON, using plain text fallback")
        return fallback or ""
    if not isinstance(doc, dict) or doc.get("type") != "doc":
        return fallback or ""
    return _collect_text(doc.get("content")).strip()


def _collect_text(nodes: Any) -> str:
    if not isinstance(nodes, list):
        return ""
    parts: list[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        node_type = node.get("type")
        if node_type == "text":
            text = node.get("text")
            parts.append(text if isinstance(text, str) else "")
        elif node_type == "hardBreak":
            parts.append("\n")
        else:
            parts.append(_collect_text(node.get("content")))
            if node_type in _BLOCK_NODES:
                parts.append("\n")
    return "".join(parts)


def count_words(text: Optional[str]) -> int:
    """Count whitespace separated words."""
    if not text:
        return 0
    return len(_WORD_RE.findall(text))


def document_text(document: DocumentStateMixin) -> str:
    """Plain text of a document or snapshot record."""
    return extract_plain_text(document.content_json, document.content_plain or "")


def estimate_page_count(document: DocumentStateMixin) -> int:
    """
    Estimate how many pages ``document`` fills with its current layout.

    Args:
        document: A Document or SnapshotDocument

    Returns:
        Estimated page count, always >= 1
    """
    width, height = PAPER_DIMENSIONS.get(
        document.paper_size or PaperSize.LETTER.value,
        PAPER_DIMENSIONS[PaperSize.LETTER.value],
    )
    font_size = max(document.body_font_size or 16.0, 1.0)
    line_height = font_size * max(document.line_spacing or 1.0, 0.1)

    usable_width = max(width - (document.margin_left or 0) - (document.margin_right or 0), font_size)
    usable_height = max(height - (document.margin_top or 0) - (document.margin_bottom or 0), line_height)

    glyph_width = font_size * AVERAGE_GLYPH_WIDTH_RATIO
    chars_per_line = max(1, int(usable_width / glyph_width))
    lines_per_page = max(1, int(usable_height / line_height))

    indent_chars = int((document.first_line_indent or 0) / glyph_width)
    spacing = (document.paragraph_spacing or 0) + (document.paragraph_spacing_before or 0)
    spacing_lines = spacing / line_height

    text = document_text(document)
    total_lines = 0.0
    if text:
        for paragraph in text.split("\n"):
            length = len(paragraph) + (indent_chars if paragraph else 0)
            total_lines += max(1, math.ceil(length / chars_per_line)) + spacing_lines

    pages = max(1, math.ceil(total_lines / lines_per_page))
    if document.include_table_of_contents:
        pages += 1
    return pages
