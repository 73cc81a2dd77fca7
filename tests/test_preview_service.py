"""Tests for snapshot preview rendering and storage."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from draftline.models import Document
from draftline.services.minio_service import MinIOServiceError
from draftline.services.preview_service import (
    PREVIEW_CONTENT_TYPE,
    SnapshotPreviewRenderer,
    get_preview_url,
    preview_object_name,
    render_preview_svg,
)


def make_document(**overrides) -> Document:
    values = dict(
        id=uuid4(),
        title="Preview",
        content_json=None,
        content_plain="First paragraph.\nSecond <paragraph> & more.",
        paper_size="a4",
        margin_top=72.0,
        margin_bottom=72.0,
        margin_left=72.0,
        margin_right=72.0,
        line_spacing=1.5,
        body_font_name="Georgia",
        body_font_size=12.0,
        body_alignment="left",
        include_page_numbers=False,
    )
    values.update(overrides)
    return Document(**values)


class TestRenderPreviewSvg:
    """Tests for SVG rendering."""

    def test_page_size_and_text(self):
        svg = render_preview_svg(make_document())

        assert svg.startswith("<svg")
        assert 'width="595" height="842"' in svg
        assert "First paragraph." in svg
        assert 'font-family="Georgia"' in svg

    def test_text_is_escaped(self):
        svg = render_preview_svg(make_document())

        assert "&lt;paragraph&gt; &amp; more." in svg
        assert "<paragraph>" not in svg

    def test_alignment_sets_anchor(self):
        assert 'text-anchor="middle"' in render_preview_svg(make_document(body_alignment="center"))
        assert 'text-anchor="end"' in render_preview_svg(make_document(body_alignment="right"))

    def test_max_lines(self):
        text = "\n".join(f"Line {i}" for i in range(100))
        svg = render_preview_svg(make_document(content_plain=text), max_lines=5)

        assert svg.count("<tspan") == 5
        assert "Line 4" in svg
        assert "Line 5" not in svg

    def test_page_number(self):
        with_number = render_preview_svg(make_document(include_page_numbers=True))
        without = render_preview_svg(make_document(include_page_numbers=False))

        assert with_number.count("<text") == 2
        assert without.count("<text") == 1


class TestSnapshotPreviewRenderer:
    """Tests for storing previews."""

    def test_uploads_svg(self):
        storage = MagicMock()
        storage.upload_bytes.side_effect = lambda name, data, content_type: name
        snapshot_id = uuid4()

        path = SnapshotPreviewRenderer(storage).save_preview(snapshot_id, make_document())

        assert path == preview_object_name(snapshot_id)
        assert path == f"snapshots/{snapshot_id}/preview.svg"
        args, kwargs = storage.upload_bytes.call_args
        assert args[0] == path
        assert args[1].startswith(b"<svg")
        assert kwargs["content_type"] == PREVIEW_CONTENT_TYPE

    def test_upload_errors_propagate(self):
        storage = MagicMock()
        storage.upload_bytes.side_effect = MinIOServiceError("bucket missing")

        with pytest.raises(MinIOServiceError):
            SnapshotPreviewRenderer(storage).save_preview(uuid4(), make_document())


class TestGetPreviewUrl:
    """Tests for signing preview download URLs."""

    def test_signs_stored_preview(self):
        storage = MagicMock()
        storage.get_presigned_download_url.return_value = "https://minio/previews/x?sig"

        url = get_preview_url("snapshots/x/preview.svg", storage)

        assert url == "https://minio/previews/x?sig"
        storage.get_presigned_download_url.assert_called_once_with("snapshots/x/preview.svg")

    def test_no_preview(self):
        storage = MagicMock()

        assert get_preview_url(None, storage) is None
        storage.get_presigned_download_url.assert_not_called()

    def test_signing_failure_yields_none(self):
        storage = MagicMock()
        storage.get_presigned_download_url.side_effect = MinIOServiceError("unreachable")

        assert get_preview_url("snapshots/x/preview.svg", storage) is None
