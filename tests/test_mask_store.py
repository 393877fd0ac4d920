"""
Tests for the mask reducer and MaskStore.
"""
import pytest

from photomask.editor.mask_store import MaskStore
from photomask.editor.reducer import (
    AcceptAllDetections,
    AddRect,
    ConvertAcceptedDetections,
    ToggleDetection,
    apply_command,
)
from photomask.models import (
    AcceptedDetection,
    BlurBrushStroke,
    BlurRect,
    MaskSet,
    PendingDetection,
    Point,
)


def stroke(*points, radius=10, strength=0.8):
    return BlurBrushStroke(
        points=tuple(Point(x=x, y=y) for x, y in points), radius=radius, strength=strength
    )


@pytest.fixture
def store():
    return MaskStore()


class TestReducer:
    """Test the pure command reducer."""

    def test_rejected_command_returns_same_object(self):
        mask_set = MaskSet()
        assert apply_command(mask_set, AddRect(BlurRect(x=0, y=0, w=4, h=10))) is mask_set

    def test_does_not_mutate_input(self, rect_a):
        mask_set = MaskSet()
        updated = apply_command(mask_set, AddRect(rect_a))
        assert mask_set.rects == ()
        assert updated.rects == (rect_a,)

    def test_unknown_command(self):
        with pytest.raises(TypeError):
            apply_command(MaskSet(), object())

    def test_accept_then_convert_leaves_no_accepted(self, pending_face, accepted_face, rect_a):
        mask_set = MaskSet(rects=(rect_a,), auto_detections=(pending_face, accepted_face))
        result = apply_command(
            apply_command(mask_set, AcceptAllDetections()), ConvertAcceptedDetections()
        )
        assert result.accepted_detections == ()
        assert result.auto_detections == ()
        assert len(result.rects) == 3

    def test_convert_keeps_detection_order(self):
        faces = (
            AcceptedDetection(x=0, y=0, w=10, h=10),
            PendingDetection(x=20, y=0, w=10, h=10),
            AcceptedDetection(x=40, y=0, w=10, h=10),
        )
        result = apply_command(MaskSet(auto_detections=faces), ConvertAcceptedDetections(radius=8))
        assert [r.x for r in result.rects] == [0, 40]
        assert all(r.radius == 8 for r in result.rects)
        assert result.auto_detections == (faces[1],)

    def test_toggle_out_of_range_is_noop(self, pending_face):
        mask_set = MaskSet(auto_detections=(pending_face,))
        assert apply_command(mask_set, ToggleDetection(1)) is mask_set
        assert apply_command(mask_set, ToggleDetection(-1)) is mask_set


class TestMaskStore:
    """Test MaskStore operations."""

    def test_add_rect(self, store, rect_a):
        assert store.add_rect(rect_a)
        assert store.current().rects == (rect_a,)

    def test_add_rect_preserves_order(self, store):
        rects = [BlurRect(x=i * 10, y=0, w=8, h=8) for i in range(3)]
        for rect in rects:
            store.add_rect(rect)
        assert store.current().rects == tuple(rects)

    def test_add_rect_rejects_small(self, store):
        before = store.current()
        assert not store.add_rect(BlurRect(x=0, y=0, w=4, h=50))
        assert not store.add_rect(BlurRect(x=0, y=0, w=50, h=4.9))
        assert store.current() is before

    def test_add_stroke(self, store):
        assert store.add_stroke(stroke((0, 0), (5, 5)))
        assert len(store.current().brush) == 1

    def test_add_stroke_rejects_single_point(self, store):
        assert not store.add_stroke(stroke((3, 3)))
        assert store.current().brush == ()

    def test_toggle_detection(self, store, pending_face):
        store.set_detections([pending_face])
        assert store.toggle_detection_accepted(0)
        assert store.current().auto_detections[0].accepted is True
        assert store.toggle_detection_accepted(0)
        assert store.current().auto_detections[0].accepted is False

    def test_toggle_missing_detection(self, store):
        assert not store.toggle_detection_accepted(3)

    def test_set_same_detections_is_noop(self, store, pending_face):
        assert store.set_detections([pending_face])
        assert not store.set_detections([pending_face])

    def test_accept_all_and_reject_all(self, store, pending_face, accepted_face):
        store.set_detections([pending_face, accepted_face])
        assert store.accept_all_detections()
        assert store.current().unresolved_count == 0
        assert not store.accept_all_detections()
        assert store.reject_all_detections()
        assert store.current().auto_detections == ()
        assert not store.reject_all_detections()

    def test_convert_accepted(self, store, rect_a, pending_face, accepted_face):
        store.add_rect(rect_a)
        store.set_detections([accepted_face, pending_face])
        assert store.convert_accepted_detections_to_rects()
        current = store.current()
        assert current.rects == (rect_a, accepted_face.to_rect(8))
        assert current.auto_detections == (pending_face,)

    def test_convert_without_accepted_is_noop(self, store, pending_face):
        store.set_detections([pending_face])
        assert not store.convert_accepted_detections_to_rects()

    def test_reset(self, store, rect_a):
        store.add_rect(rect_a)
        assert store.reset(MaskSet())
        assert store.current().is_empty
        assert not store.reset(MaskSet())

    def test_listeners(self, store, rect_a):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        store.add_rect(rect_a)
        store.add_rect(BlurRect(x=0, y=0, w=1, h=1))
        assert seen == [store.current()]

        unsubscribe()
        store.reset(MaskSet())
        assert len(seen) == 1
