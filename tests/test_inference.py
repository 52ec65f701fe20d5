from types import SimpleNamespace

import numpy as np
import pytest

from ibomscope.inference import (
    Box,
    Detection,
    InferenceEngine,
    InferenceError,
    nms_boxes,
)
from ibomscope.models import ModelManager


class FakeSession:
    def __init__(self, output, input_shape=(1, 3, 32, 32)):
        self.output = output
        self.input_shape = input_shape
        self.calls = []

    def get_inputs(self):
        return [SimpleNamespace(name="images", shape=list(self.input_shape))]

    def get_outputs(self):
        return [SimpleNamespace(name="output0", shape=None)]

    def run(self, output_names, feed):
        self.calls.append((output_names, feed))
        return [self.output]


class FailingSession(FakeSession):
    def run(self, output_names, feed):
        raise RuntimeError("boom")


def make_output(columns, num_classes=2):
    """Build a [1, 4 + classes, N] tensor from (cx, cy, w, h, scores...) tuples."""
    data = np.zeros((1, 4 + num_classes, len(columns)), dtype=np.float32)
    for i, col in enumerate(columns):
        data[0, :, i] = col
    return data


@pytest.fixture
def manager(tmp_path):
    return ModelManager(tmp_path / "missing")


def loaded_engine(manager, session):
    engine = InferenceEngine(manager, session_factory=lambda path: session)
    engine.load_model("model.onnx")
    return engine


def test_nms_suppresses_overlapping_lower_score():
    boxes = [Box(0, 0, 10, 10), Box(1, 1, 10, 10), Box(50, 50, 10, 10)]
    kept = nms_boxes(boxes, [0.6, 0.9, 0.7], 0.5, 0.45)
    assert kept == [1, 2]


def test_nms_keeps_disjoint_boxes_in_score_order():
    boxes = [Box(0, 0, 5, 5), Box(20, 20, 5, 5), Box(40, 40, 5, 5)]
    assert nms_boxes(boxes, [0.6, 0.8, 0.7], 0.5, 0.45) == [1, 2, 0]


def test_nms_score_threshold_is_strict():
    boxes = [Box(0, 0, 5, 5), Box(20, 20, 5, 5)]
    assert nms_boxes(boxes, [0.5, 0.51], 0.5, 0.45) == [1]


def test_nms_ties_keep_input_order():
    boxes = [Box(0, 0, 5, 5), Box(20, 20, 5, 5)]
    assert nms_boxes(boxes, [0.8, 0.8], 0.5, 0.45) == [0, 1]


def test_nms_length_mismatch():
    with pytest.raises(ValueError):
        nms_boxes([Box(0, 0, 1, 1)], [0.5, 0.6], 0.1, 0.5)


def test_detect_without_model_returns_empty(manager):
    engine = InferenceEngine(manager)
    assert not engine.is_ready()
    assert engine.detect(np.zeros((8, 8, 3), dtype=np.uint8)) == []


def test_load_model_without_factory_raises(manager):
    engine = InferenceEngine(manager)
    with pytest.raises(InferenceError):
        engine.load_model("model.onnx")


def test_load_model_factory_failure(manager):
    def factory(path):
        raise OSError("missing file")

    engine = InferenceEngine(manager, session_factory=factory)
    with pytest.raises(InferenceError):
        engine.load_model("model.onnx")
    assert engine.is_ready() is False


def test_load_model_reads_input_size(manager):
    engine = loaded_engine(manager, FakeSession(make_output([]), input_shape=(1, 3, 48, 64)))
    assert engine.is_ready()
    assert engine.input_size == (64, 48)


def test_default_input_size(manager):
    assert InferenceEngine(manager).input_size == (640, 640)


def test_preprocess_layout_and_channel_order(manager):
    engine = loaded_engine(manager, FakeSession(make_output([]), input_shape=(1, 3, 16, 24)))
    frame = np.zeros((10, 20, 3), dtype=np.uint8)
    frame[..., 0] = 255  # blue in BGR
    tensor = engine.preprocess(frame)
    assert tensor.shape == (1, 3, 16, 24)
    assert tensor.dtype == np.float32
    assert np.allclose(tensor[0, 2], 1.0)
    assert np.allclose(tensor[0, 0], 0.0)
    assert np.allclose(tensor[0, 1], 0.0)


def test_preprocess_uniform_frame_stays_uniform(manager):
    engine = loaded_engine(manager, FakeSession(make_output([])))
    frame = np.full((7, 13, 3), 51, dtype=np.uint8)
    tensor = engine.preprocess(frame)
    assert np.allclose(tensor, 51 / 255.0)


def test_preprocess_rejects_grayscale(manager):
    engine = loaded_engine(manager, FakeSession(make_output([])))
    with pytest.raises(ValueError):
        engine.preprocess(np.zeros((8, 8), dtype=np.uint8))


def test_postprocess_decodes_box_and_class(manager):
    engine = loaded_engine(manager, FakeSession(make_output([])))
    output = make_output([(16, 16, 8, 4, 0.2, 0.9)])
    dets = engine.postprocess(output, (32, 32), 0.5, 0.45)
    assert len(dets) == 1
    det = dets[0]
    assert det.class_id == 1
    assert det.class_name == "class_1"
    assert det.confidence == pytest.approx(0.9)
    assert det.bbox == Box(16 - 8 / 2, 16 - 4 / 2, 8, 4)


def test_postprocess_scales_to_original_size(manager):
    engine = loaded_engine(manager, FakeSession(make_output([])))
    output = make_output([(16, 16, 8, 4, 0.9, 0.1)])
    small = engine.postprocess(output, (32, 32), 0.5, 0.45)[0].bbox
    big = engine.postprocess(output, (64, 96), 0.5, 0.45)[0].bbox
    assert big.x == pytest.approx(small.x * 2)
    assert big.width == pytest.approx(small.width * 2)
    assert big.y == pytest.approx(small.y * 3)
    assert big.height == pytest.approx(small.height * 3)


def test_postprocess_filters_low_confidence(manager):
    engine = loaded_engine(manager, FakeSession(make_output([])))
    output = make_output([(5, 5, 4, 4, 0.1, 0.2), (25, 25, 4, 4, 0.8, 0.0)])
    dets = engine.postprocess(output, (32, 32), 0.5, 0.45)
    assert [d.class_id for d in dets] == [0]


def test_postprocess_uses_class_names(tmp_path):
    labels = tmp_path / "labels.txt"
    labels.write_text("resistor\ncapacitor\n", encoding="utf-8")
    mgr = ModelManager(tmp_path)
    mgr.load_class_names(labels)
    engine = loaded_engine(mgr, FakeSession(make_output([])))
    output = make_output([(16, 16, 8, 8, 0.1, 0.95)])
    dets = engine.postprocess(output, (32, 32), 0.5, 0.45)
    assert dets[0].class_name == "capacitor"


def test_postprocess_short_output_is_empty(manager):
    engine = loaded_engine(manager, FakeSession(make_output([])))
    assert engine.postprocess(np.zeros((6, 3)), (32, 32), 0.5, 0.45) == []


def test_detect_runs_session_and_suppresses(manager):
    output = make_output([(16, 16, 10, 10, 0.9, 0.0), (17, 16, 10, 10, 0.7, 0.0)])
    session = FakeSession(output)
    engine = loaded_engine(manager, session)
    frame = np.zeros((32, 32, 3), dtype=np.uint8)
    dets = engine.detect(frame)
    assert len(dets) == 1
    assert dets[0].confidence == pytest.approx(0.9)
    assert isinstance(dets[0], Detection)
    output_names, feed = session.calls[0]
    assert output_names == ["output0"]
    assert feed["images"].shape == (1, 3, 32, 32)
    assert engine.last_inference_ms >= 0.0


def test_detect_session_failure_raises(manager):
    engine = loaded_engine(manager, FailingSession(make_output([])))
    with pytest.raises(InferenceError):
        engine.detect(np.zeros((32, 32, 3), dtype=np.uint8))