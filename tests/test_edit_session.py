"""
Tests for the edit session state machine.

Tests cover:
- Loading sources (PIL, bytes, paths) and invalid uploads
- Auto segmentation from the pristine original
- Painting, committing and undo
- Bounded history through the session
- AI replacement, decode failures and stale generations
- Rendering and export
- Parameter validation
"""

import io

import numpy as np
import pytest
from PIL import Image

from OC_Libs.errors import DecodeError, InvalidImageSource, SessionNotLoaded
from OC_Libs.RasterLib.image_models import RenderMode
from OC_Libs.SessionLib.edit_session import EditSession, open_source_image
from OC_Libs.SessionLib.session_models import SessionParameters, SessionState


def decode(data: bytes):
    with Image.open(io.BytesIO(data)) as img:
        return img.convert("RGBA")


class TestLoadImage:
    """Tests for EditSession.load_image."""

    def test_starts_empty(self):
        session = EditSession()

        assert session.state is SessionState.EMPTY
        assert session.history_depth == 0

    def test_operations_require_image(self):
        session = EditSession()

        with pytest.raises(SessionNotLoaded):
            session.commit_mask()
        with pytest.raises(SessionNotLoaded):
            session.export_current()
        with pytest.raises(SessionNotLoaded):
            session.paint_stroke(1, 1)

    def test_load_pil_image(self, opaque_image):
        session = EditSession()

        session.load_image(opaque_image)

        assert session.state is SessionState.LOADED
        assert session.size == (100, 100)
        assert session.history_depth == 1
        assert session.mask.is_empty()
        assert session.base.get_pixel(0, 0) == (0, 0, 255, 255)

    def test_load_bytes(self, png_bytes):
        session = EditSession()

        session.load_image(png_bytes(7, 5))

        assert session.size == (7, 5)

    def test_load_path(self, tmp_path, subject_image):
        path = tmp_path / "subject.png"
        subject_image.save(path)
        session = EditSession()

        session.load_image(path)

        assert session.size == (20, 20)

    def test_invalid_bytes(self):
        with pytest.raises(InvalidImageSource):
            EditSession().load_image(b"not an image")

    def test_missing_path(self, tmp_path):
        with pytest.raises(InvalidImageSource):
            EditSession().load_image(tmp_path / "missing.png")

    def test_unsupported_type(self):
        with pytest.raises(InvalidImageSource):
            open_source_image(12345)

    def test_invalid_upload_keeps_previous_document(self, loaded_session):
        generation = loaded_session.generation

        with pytest.raises(InvalidImageSource):
            loaded_session.load_image(b"garbage")

        assert loaded_session.size == (100, 100)
        assert loaded_session.generation == generation

    def test_reload_discards_everything(self, loaded_session, subject_image):
        loaded_session.paint_stroke(50, 50)
        loaded_session.commit_mask()
        loaded_session.paint_stroke(20, 20)

        loaded_session.load_image(subject_image)

        assert loaded_session.size == (20, 20)
        assert loaded_session.history_depth == 1
        assert loaded_session.mask.is_empty()
        assert loaded_session.mask.size == (20, 20)


class TestAutoSegmentation:
    """Tests for EditSession.run_auto_segmentation."""

    def test_uniform_gray_becomes_transparent(self):
        session = EditSession()
        session.load_image(Image.new("RGBA", (4, 4), (128, 128, 128, 255)))

        session.run_auto_segmentation(tolerance_percent=50, smoothing_passes=0)

        assert session.base.is_empty()
        assert session.parameters.tolerance_percent == 50

    def test_recomputes_from_original(self):
        """Should never compound transparency from earlier runs."""
        img = Image.new("RGBA", (20, 20), (128, 128, 128, 255))
        pixels = img.load()
        for y in range(7, 13):
            for x in range(7, 13):
                pixels[x, y] = (100, 100, 100, 255)
        session = EditSession()
        session.load_image(img)

        session.run_auto_segmentation(tolerance_percent=50, smoothing_passes=0)
        assert session.base.is_empty()

        session.run_auto_segmentation(tolerance_percent=5)
        base = session.base
        assert base.get_pixel(10, 10)[3] == 255
        assert base.get_pixel(0, 0)[3] == 0

    def test_pushes_history_and_clears_mask(self, subject_image):
        session = EditSession()
        session.load_image(subject_image)
        session.paint_stroke(10, 10)

        session.run_auto_segmentation()

        assert session.history_depth == 2
        assert session.mask.is_empty()
        assert session.undo()
        assert session.base.get_pixel(0, 0) == (255, 255, 255, 255)

    def test_invalid_tolerance_leaves_state(self, subject_image):
        session = EditSession()
        session.load_image(subject_image)

        with pytest.raises(ValueError):
            session.run_auto_segmentation(tolerance_percent=0)

        assert session.history_depth == 1
        assert session.parameters.tolerance_percent == 15


class TestCommitAndUndo:
    """Tests for painting, commit_mask and undo."""

    def test_commit_erases_circle(self, loaded_session):
        """Should punch a radius-10 hole at (50, 50) and clear the mask."""
        loaded_session.paint_stroke(50, 50, radius=10)

        assert loaded_session.commit_mask()

        base = loaded_session.base
        assert base.get_pixel(50, 50)[3] == 0
        assert base.get_pixel(50, 45)[3] == 0
        assert base.get_pixel(56, 50)[3] == 0
        assert base.get_pixel(50, 65)[3] == 255
        assert base.get_pixel(0, 0)[3] == 255
        hole = int((base.alpha == 0).sum())
        assert abs(hole - np.pi * 100) < 20
        assert loaded_session.mask.is_empty()
        assert loaded_session.history_depth == 2

    def test_paint_does_not_touch_history(self, loaded_session):
        loaded_session.paint_stroke(10, 10)

        assert loaded_session.history_depth == 1
        assert loaded_session.base.get_pixel(10, 10)[3] == 255

    def test_paint_uses_brush_radius(self, loaded_session):
        loaded_session.set_brush_radius(5)

        painted = loaded_session.paint_stroke(50, 50)

        assert painted < np.pi * 36

    def test_empty_commit_is_noop(self, loaded_session):
        assert not loaded_session.commit_mask()
        assert loaded_session.history_depth == 1

    def test_undo_restores_pre_commit_and_keeps_mask(self, loaded_session):
        before = loaded_session.base
        loaded_session.paint_stroke(50, 50)
        loaded_session.commit_mask()
        loaded_session.paint_stroke(10, 80)
        mask_before_undo = loaded_session.mask

        assert loaded_session.undo()

        assert loaded_session.base == before
        assert loaded_session.mask == mask_before_undo

    def test_undo_at_initial_state(self, loaded_session):
        before = loaded_session.base

        assert not loaded_session.undo()
        assert loaded_session.base == before

    def test_history_bounded_to_twenty(self, loaded_session):
        states = []
        for i in range(25):
            loaded_session.paint_stroke(5 + 3 * i, 50, radius=5)
            loaded_session.commit_mask()
            states.append(loaded_session.base)

        assert loaded_session.history_depth == 20
        for _ in range(19):
            assert loaded_session.undo()
        assert not loaded_session.undo()
        assert loaded_session.base == states[5]

    def test_paint_path(self, loaded_session):
        loaded_session.paint_path([(10, 10), (90, 10)], radius=5)

        assert loaded_session.mask.coverage()[10, 10:90].all()

    def test_clear_mask(self, loaded_session):
        loaded_session.paint_stroke(30, 30)

        loaded_session.clear_mask()

        assert not loaded_session.commit_mask()

    @pytest.mark.parametrize("radius", [0, 4, 101, -10])
    def test_radius_override_out_of_range(self, loaded_session, radius):
        with pytest.raises(ValueError):
            loaded_session.paint_stroke(50, 50, radius=radius)
        with pytest.raises(ValueError):
            loaded_session.paint_path([(10, 10), (20, 10)], radius=radius)

        assert loaded_session.mask.is_empty()


class TestAiReplacement:
    """Tests for EditSession.apply_ai_replacement."""

    def test_resizes_and_resets_history(self, loaded_session, png_bytes):
        loaded_session.paint_stroke(50, 50)
        loaded_session.commit_mask()
        loaded_session.paint_stroke(10, 10)
        data = png_bytes(40, 30, (0, 255, 0, 128))

        assert loaded_session.apply_ai_replacement(data)

        assert loaded_session.size == (40, 30)
        assert loaded_session.history_depth == 1
        assert loaded_session.base.get_pixel(39, 29) == (0, 255, 0, 128)
        assert loaded_session.mask.is_empty()
        assert loaded_session.mask.size == (40, 30)
        assert not loaded_session.undo()

    def test_invalid_payload_leaves_state(self, loaded_session):
        loaded_session.paint_stroke(50, 50)
        loaded_session.commit_mask()
        base = loaded_session.base
        generation = loaded_session.generation

        with pytest.raises(DecodeError):
            loaded_session.apply_ai_replacement(b"<html>quota exceeded</html>")

        assert loaded_session.base == base
        assert loaded_session.history_depth == 2
        assert loaded_session.generation == generation

    def test_oversized_payload_leaves_state(self, loaded_session, oversized_png):
        base = loaded_session.base
        generation = loaded_session.generation

        with pytest.raises(DecodeError):
            loaded_session.apply_ai_replacement(oversized_png)

        assert loaded_session.base == base
        assert loaded_session.size == (100, 100)
        assert loaded_session.history_depth == 1
        assert loaded_session.generation == generation

    def test_stale_after_new_image(self, loaded_session, subject_image, png_bytes):
        request = loaded_session.begin_ai_request()
        loaded_session.load_image(subject_image)

        applied = loaded_session.apply_ai_replacement(png_bytes(8, 8), generation=request.generation)

        assert not applied
        assert loaded_session.size == (20, 20)

    def test_stale_after_auto_segmentation(self, loaded_session, png_bytes):
        request = loaded_session.begin_ai_request()
        loaded_session.run_auto_segmentation()
        base = loaded_session.base

        assert not loaded_session.apply_ai_replacement(png_bytes(8, 8), generation=request.generation)
        assert loaded_session.base == base

    def test_local_edits_do_not_invalidate(self, loaded_session, png_bytes):
        request = loaded_session.begin_ai_request()
        loaded_session.paint_stroke(50, 50)
        loaded_session.commit_mask()
        loaded_session.undo()

        assert loaded_session.apply_ai_replacement(png_bytes(8, 8), generation=request.generation)

    def test_request_carries_current_base(self, loaded_session):
        request = loaded_session.begin_ai_request()

        assert request.generation == loaded_session.generation
        assert decode(request.encoded_image).size == (100, 100)

    def test_undo_across_sizes_resizes_mask(self, png_bytes):
        session = EditSession()
        session.load_image(Image.new("RGBA", (50, 50), (255, 255, 255, 255)))
        session.apply_ai_replacement(png_bytes(20, 20))
        session.run_auto_segmentation()
        assert session.size == (50, 50)
        session.paint_stroke(25, 25)

        assert session.undo()

        assert session.size == (20, 20)
        assert session.mask.size == (20, 20)
        assert session.mask.is_empty()


class TestRenderAndExport:
    """Tests for render and export_current."""

    def test_editing_mode_shows_overlay(self, loaded_session):
        loaded_session.paint_stroke(50, 50)

        display = loaded_session.render()

        assert display.get_pixel(50, 50) == (153, 0, 102, 255)

    def test_preview_mode_shows_erase(self, loaded_session):
        loaded_session.set_render_mode(RenderMode.PREVIEW_RESULT)
        loaded_session.paint_stroke(50, 50)

        assert loaded_session.render().get_pixel(50, 50)[3] == 0

    def test_export_always_erases(self, loaded_session):
        loaded_session.paint_stroke(50, 50)
        assert loaded_session.parameters.render_mode is RenderMode.EDITING_MASK

        exported = decode(loaded_session.export_current())

        assert exported.size == (100, 100)
        assert exported.getpixel((50, 50))[3] == 0
        assert exported.getpixel((0, 0)) == (0, 0, 255, 255)

    def test_export_does_not_commit(self, loaded_session):
        loaded_session.paint_stroke(50, 50)

        loaded_session.export_current()

        assert loaded_session.history_depth == 1
        assert not loaded_session.mask.is_empty()


class TestParameters:
    """Tests for session parameter handling."""

    def test_defaults(self):
        parameters = SessionParameters()

        assert parameters.tolerance_percent == 15
        assert parameters.smoothing_passes == 0
        assert parameters.brush_radius == 30
        assert parameters.render_mode is RenderMode.EDITING_MASK

    @pytest.mark.parametrize("field,value", [
        ("tolerance_percent", 0),
        ("tolerance_percent", 101),
        ("smoothing_passes", 11),
        ("brush_radius", 4),
        ("brush_radius", 101),
        ("render_mode", "sepia"),
    ])
    def test_rejects_out_of_range(self, field, value):
        session = EditSession()

        with pytest.raises(ValueError):
            session.update_parameters(**{field: value})

        assert session.parameters == SessionParameters()

    def test_roundtrip_dict(self):
        parameters = SessionParameters(tolerance_percent=40, smoothing_passes=2,
                                       brush_radius=12, render_mode="preview_result")

        restored = SessionParameters.from_dict(parameters.to_dict())

        assert restored == parameters
        assert restored.render_mode is RenderMode.PREVIEW_RESULT
