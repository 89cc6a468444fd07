"""
Tests for the perception providers with the model backends faked.
"""

from types import SimpleNamespace

import numpy as np
import pytest
from unittest.mock import MagicMock

from interview_monitor.app.ai import face_mesh, object_detector
from interview_monitor.app.ai.gaze import Landmark
from interview_monitor.app.ai.object_detector import Detection, ObjectDetector
from interview_monitor.app.ai.face_mesh import FaceMeshProvider


def fake_box(cls_id, conf, xyxy):
    return SimpleNamespace(conf=[conf], cls=[cls_id], xyxy=[xyxy])


class FakeYOLO:
    def __init__(self, model_path):
        self.model_path = model_path
        self.boxes = []

    def __call__(self, frame, verbose=False):
        return [SimpleNamespace(boxes=self.boxes, names={0: "person", 73: "book", 67: "cell phone"})]


class FakeFaceMesh:
    def __init__(self, faces):
        self.faces = faces
        self.closed = False

    def process(self, rgb):
        return SimpleNamespace(multi_face_landmarks=self.faces)

    def close(self):
        self.closed = True


@pytest.fixture
def yolo(monkeypatch):
    monkeypatch.setattr(object_detector, "YOLO_AVAILABLE", True)
    monkeypatch.setattr(object_detector, "YOLO", FakeYOLO)


class TestObjectDetector:
    """Tests for YOLO result conversion."""

    def test_detect_converts_boxes(self, yolo):
        detector = ObjectDetector(confidence_threshold=0.5)
        detector.model.boxes = [
            fake_box(0, 0.95, [1.0, 2.0, 30.0, 40.0]),
            fake_box(73, 0.87, [5.0, 6.0, 7.0, 8.0]),
            fake_box(67, 0.3, [0.0, 0.0, 1.0, 1.0]),
        ]

        detections = detector.detect(np.zeros((8, 8, 3), dtype=np.uint8))

        assert detections == [
            Detection("person", 0.95, (1.0, 2.0, 30.0, 40.0)),
            Detection("book", 0.87, (5.0, 6.0, 7.0, 8.0)),
        ]

    def test_empty_frame(self, yolo):
        detector = ObjectDetector()

        assert detector.detect(None) == []
        assert detector.detect(np.zeros((0, 0, 3), dtype=np.uint8)) == []

    def test_disabled_without_backend(self, monkeypatch):
        monkeypatch.setattr(object_detector, "YOLO_AVAILABLE", False)

        detector = ObjectDetector()

        assert detector.enabled is False
        assert detector.detect(np.zeros((8, 8, 3), dtype=np.uint8)) == []

    def test_model_error_is_empty(self, yolo):
        detector = ObjectDetector()
        detector.model = MagicMock(side_effect=RuntimeError("cuda"))

        assert detector.detect(np.zeros((8, 8, 3), dtype=np.uint8)) == []


class TestFaceMeshProvider:
    """Tests for MediaPipe result conversion."""

    def make_provider(self, monkeypatch, faces):
        mesh = FakeFaceMesh(faces)
        monkeypatch.setattr(face_mesh, "MP_AVAILABLE", True)
        monkeypatch.setattr(face_mesh, "mp_face_mesh", SimpleNamespace(FaceMesh=lambda **kwargs: mesh))
        return FaceMeshProvider(), mesh

    def test_landmarks_per_face(self, monkeypatch):
        face = SimpleNamespace(landmark=[SimpleNamespace(x=0.1, y=0.2, z=0.3)] * 3)
        provider, _ = self.make_provider(monkeypatch, [face, face])

        result = provider.landmarks(np.zeros((8, 8, 3), dtype=np.uint8))

        assert len(result) == 2
        assert result[0] == [Landmark(0.1, 0.2, 0.3)] * 3

    def test_no_faces(self, monkeypatch):
        provider, _ = self.make_provider(monkeypatch, None)

        assert provider.landmarks(np.zeros((8, 8, 3), dtype=np.uint8)) == []
        assert provider.landmarks(None) == []

    def test_close(self, monkeypatch):
        provider, mesh = self.make_provider(monkeypatch, None)

        provider.close()

        assert mesh.closed is True
        assert provider.face_mesh is None
