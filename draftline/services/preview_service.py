"""Snapshot preview rendering.

A preview is an SVG picture of a document's first page: the paper outline,
the text block inside the margins, and the opening lines of body text set
in the document's font and alignment. Previews are stored in MinIO under
``snapshots/<snapshot_id>/preview.svg``.
"""

import html
import logging
import textwrap
from typing import Optional, Protocol
from uuid import UUID

from ..config import settings
from ..models.document import PAPER_DIMENSIONS, DocumentStateMixin, PaperSize, ParagraphAlignment
from .minio_service import MinIOService, get_minio_service
from .pagination_service import AVERAGE_GLYPH_WIDTH_RATIO, document_text

logger = logging.getLogger(__name__)

PREVIEW_CONTENT_TYPE = "image/svg+xml"

_TEXT_ANCHORS = {
    ParagraphAlignment.LEFT.value: "start",
    ParagraphAlignment.JUSTIFIED.value: "start",
    ParagraphAlignment.CENTER.value: "middle",
    ParagraphAlignment.RIGHT.value: "end",
}


class PreviewRenderer(Protocol):
    """Anything that can persist a preview for a snapshot."""

    def save_preview(self, snapshot_id: UUID, document: DocumentStateMixin) -> Optional[str]:
        ...


def preview_object_name(snapshot_id: UUID) -> str:
    """Storage key for a snapshot's preview."""
    return f"snapshots/{snapshot_id}/preview.svg"


def _wrap_lines(text: str, width: int, max_lines: int) -> list[str]:
    lines: list[str] = []
    for paragraph in text.split("\n"):
        wrapped = textwrap.wrap(paragraph, width=width) or [""]
        lines.extend(wrapped)
        if len(lines) >= max_lines:
            break
    return lines[:max_lines]


def render_preview_svg(document: DocumentStateMixin, max_lines: Optional[int] = None) -> str:
    """
    Render the first page of ``document`` as an SVG string.

    Args:
        document: A Document or SnapshotDocument
        max_lines: Upper bound on drawn lines (default: settings.preview_max_lines)

    Returns:
        SVG markup
    """
    max_lines = max_lines or settings.preview_max_lines
    width, height = PAPER_DIMENSIONS.get(
        document.paper_size or PaperSize.LETTER.value,
        PAPER_DIMENSIONS[PaperSize.LETTER.value],
    )
    font_size = document.body_font_size or 16.0
    line_height = font_size * (document.line_spacing or 1.0)
    left = document.margin_left or 0
    right = width - (document.margin_right or 0)
    top = document.margin_top or 0
    bottom = height - (document.margin_bottom or 0)

    chars_per_line = max(1, int((right - left) / (font_size * AVERAGE_GLYPH_WIDTH_RATIO)))
    fitting_lines = max(1, int((bottom - top) / line_height))
    lines = _wrap_lines(document_text(document), chars_per_line, min(max_lines, fitting_lines))

    anchor = _TEXT_ANCHORS.get(document.body_alignment, "start")
    x = {"start": left, "middle": (left + right) / 2, "end": right}[anchor]
    font_family = html.escape(document.body_font_name or "serif", quote=True)

    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:g}" height="{height:g}" '
        f'viewBox="0 0 {width:g} {height:g}">',
        f'<rect width="{width:g}" height="{height:g}" fill="#ffffff" stroke="#d0d0d0"/>',
        f'<text font-family="{font_family}" font-size="{font_size:g}" '
        f'text-anchor="{anchor}" fill="#1a1a1a">',
    ]
    for index, line in enumerate(lines):
        y = top + font_size + index * line_height
        parts.append(f'<tspan x="{x:g}" y="{y:g}">{html.escape(line)}</tspan>')
    parts.append("</text>")
    if document.include_page_numbers:
        parts.append(
            f'<text x="{width / 2:g}" y="{bottom + (document.margin_bottom or 0) / 2:g}" '
            f'font-family="{font_family}" font-size="{font_size * 0.75:g}" '
            f'text-anchor="middle" fill="#666666">1</text>'
        )
    parts.append("</svg>")
    return "".join(parts)


class SnapshotPreviewRenderer:
    """Render snapshot previews and store them in MinIO."""

    def __init__(self, storage: Optional[MinIOService] = None):
        self.storage = storage or get_minio_service()

    def save_preview(self, snapshot_id: UUID, document: DocumentStateMixin) -> Optional[str]:
        """
        Render and upload the preview for a snapshot.

        Returns:
            The object name of the stored preview

        Raises:
            MinIOServiceError: If the upload fails
        """
        svg = render_preview_svg(document)
        object_name = self.storage.upload_bytes(
            preview_object_name(snapshot_id),
            svg.encode("utf-8"),
            content_type=PREVIEW_CONTENT_TYPE,
        )
        logger.debug(f"Stored preview for snapshot {snapshot_id} at {object_name}")
        return object_name


def get_preview_url(
    object_name: Optional[str],
    storage: Optional[MinIOService] = None,
) -> Optional[str]:
    """
    Presigned download URL for a stored preview.

    Returns:
        The URL, or None when there is no preview or signing fails
    """
    if not object_name:
        return None
    storage = storage or get_minio_service()
    try:
        return storage.get_presigned_download_url(object_name)
    except Exception as e:
        logger.warning(f"Could not sign preview URL for {object_name}: {e}")
        return None
