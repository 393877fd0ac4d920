"""
Tests for the save handshake.
"""
import pytest
from botocore.exceptions import ClientError

from photomask.editor.gateway import PersistenceGateway
from photomask.editor.history import HistoryManager
from photomask.editor.mask_store import MaskStore
from photomask.exceptions import PhotoServiceError, SaveError
from photomask.models import MaskSet


@pytest.fixture
def masks(rect_a, accepted_face, pending_face):
    return MaskSet(rects=(rect_a,), auto_detections=(accepted_face, pending_face))


@pytest.fixture
def gateway(masks, fake_service):
    store = MaskStore(masks)
    return PersistenceGateway("order-1", store, HistoryManager(masks), fake_service)


class TestPayload:
    def test_accepted_detections_become_rects(self, gateway, rect_a, accepted_face, pending_face):
        payload = gateway.build_payload()
        assert payload.rects == (rect_a, accepted_face.to_rect(8))
        assert payload.auto_detections == (pending_face,)

    def test_building_payload_does_not_commit(self, gateway, masks):
        gateway.build_payload()
        assert gateway.store.current() is masks


class TestSave:
    """Test save success and failure paths."""

    def test_success(self, gateway, fake_service, rect_a, accepted_face, pending_face):
        photo = gateway.save("photo-1")

        assert [c[0] for c in fake_service.calls] == ["set_masks", "process"]
        assert fake_service.calls[0][1:] == ("order-1", "photo-1")
        assert photo.processing.blurred_path is not None

        current = gateway.store.current()
        assert current.rects == (rect_a, accepted_face.to_rect(8))
        assert current.auto_detections == (pending_face,)
        assert gateway.history.present == current
        assert gateway.history.can_undo

    def test_payload_is_wire_ready(self, gateway, fake_service):
        gateway.save("photo-1")
        wire = fake_service.payloads[0].to_wire()
        assert len(wire["rects"]) == 2
        assert wire["autoDetections"] == [
            {"type": "face", "x": 30, "y": 5, "w": 12, "h": 14, "confidence": 0.9, "accepted": False}
        ]

    def test_set_masks_failure_preserves_state(self, gateway, fake_service, masks):
        fake_service.fail_set_masks = True

        with pytest.raises(SaveError) as exc_info:
            gateway.save("photo-1")

        assert exc_info.value.stage == "set_masks"
        assert exc_info.value.photo_id == "photo-1"
        assert isinstance(exc_info.value.__cause__, PhotoServiceError)
        assert [c[0] for c in fake_service.calls] == ["set_masks"]
        assert gateway.store.current() is masks
        assert len(gateway.history) == 1

    def test_process_failure_preserves_state(self, gateway, fake_service, masks):
        fake_service.fail_process = True

        with pytest.raises(SaveError) as exc_info:
            gateway.save("photo-1")

        assert exc_info.value.stage == "process"
        assert gateway.store.current() is masks
        assert not gateway.history.can_undo

    def test_retry_after_failure(self, gateway, fake_service):
        fake_service.fail_process = True
        with pytest.raises(SaveError):
            gateway.save("photo-1")

        fake_service.fail_process = False
        gateway.save("photo-1")
        assert fake_service.payloads[0] == fake_service.payloads[1]
        assert gateway.store.current().accepted_detections == ()

    def test_nothing_to_convert(self, fake_service, rect_a):
        masks = MaskSet(rects=(rect_a,))
        gateway = PersistenceGateway("order-1", MaskStore(masks), HistoryManager(masks), fake_service)
        gateway.save("photo-1")
        assert gateway.store.current() is masks
        assert not gateway.history.can_undo


class TestUnexpectedServiceErrors:
    """Failures outside PhotoServiceError still surface as SaveError."""

    def test_storage_error_during_process(self, gateway, fake_service, masks):
        def process(order_id, photo_id):
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")

        fake_service.process = process

        with pytest.raises(SaveError) as exc_info:
            gateway.save("photo-1")

        assert exc_info.value.stage == "process"
        assert isinstance(exc_info.value.__cause__, ClientError)
        assert gateway.store.current() is masks
        assert not gateway.history.can_undo

    def test_malformed_response_during_set_masks(self, gateway, fake_service, masks):
        def set_masks(order_id, photo_id, payload):
            raise ValueError("response body is not valid JSON")

        fake_service.set_masks = set_masks

        with pytest.raises(SaveError) as exc_info:
            gateway.save("photo-1")

        assert exc_info.value.stage == "set_masks"
        assert gateway.store.current() is masks
