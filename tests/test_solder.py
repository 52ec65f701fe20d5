import numpy as np
import pytest

from ibomscope.inference import InferenceEngine, InferenceError
from ibomscope.models import ModelManager
from ibomscope.solder import (
    SolderInspector,
    SolderQuality,
    SolderResult,
    quality_color,
    quality_string,
)

NUM_CLASSES = 8
SIZE = 64


class _Node:
    def __init__(self, name, shape):
        self.name = name
        self.shape = shape


class _FakeSession:
    def __init__(self, output):
        self.output = output

    def get_inputs(self):
        return [_Node("images", [1, 3, SIZE, SIZE])]

    def get_outputs(self):
        return [_Node("output0", None)]

    def run(self, names, feed):
        return [self.output]


def _output(columns):
    """columns: list of (cx, cy, w, h, class_id, conf)."""
    data = np.zeros((1, 4 + NUM_CLASSES, max(len(columns), 1)), dtype=np.float32)
    for i, (cx, cy, w, h, cls, conf) in enumerate(columns):
        data[0, 0:4, i] = (cx, cy, w, h)
        data[0, 4 + cls, i] = conf
    return data


def _inspector(tmp_path, columns):
    session = _FakeSession(_output(columns))
    engine = InferenceEngine(ModelManager(tmp_path), session_factory=lambda path: session)
    inspector = SolderInspector(engine)
    inspector.load_model(tmp_path / "solder.onnx")
    return inspector


def _frame():
    return np.zeros((SIZE, SIZE, 3), dtype=np.uint8)


@pytest.mark.parametrize(
    "class_id, quality",
    [
        (0, SolderQuality.GOOD),
        (1, SolderQuality.INSUFFICIENT),
        (2, SolderQuality.EXCESS),
        (3, SolderQuality.BRIDGE),
        (4, SolderQuality.COLD),
        (5, SolderQuality.MISSING),
        (6, SolderQuality.UNKNOWN),
        (-1, SolderQuality.UNKNOWN),
    ],
)
def test_from_class_id(class_id, quality):
    assert SolderQuality.from_class_id(class_id) is quality


@pytest.mark.parametrize(
    "quality, text",
    [
        (SolderQuality.GOOD, "Good"),
        (SolderQuality.INSUFFICIENT, "Insufficient"),
        (SolderQuality.EXCESS, "Excess"),
        (SolderQuality.BRIDGE, "Bridge"),
        (SolderQuality.COLD, "Cold Joint"),
        (SolderQuality.MISSING, "Missing"),
        (SolderQuality.UNKNOWN, "Unknown"),
    ],
)
def test_quality_string(quality, text):
    assert quality_string(quality) == text


def test_quality_colors():
    assert quality_color(SolderQuality.GOOD) == (0, 255, 0)
    assert quality_color(SolderQuality.BRIDGE) == (0, 0, 255)
    assert quality_color(SolderQuality.UNKNOWN) == (128, 128, 128)
    colors = {quality_color(q) for q in SolderQuality}
    assert len(colors) == len(SolderQuality)


def test_result_defaults():
    result = SolderResult()
    assert result.quality is SolderQuality.UNKNOWN
    assert result.component_ref == ""


@pytest.mark.parametrize("class_id", range(7))
def test_inspect_maps_class(tmp_path, class_id):
    inspector = _inspector(tmp_path, [(20, 20, 10, 10, class_id, 0.9)])
    results = inspector.inspect(_frame())
    assert len(results) == 1
    assert results[0].quality is SolderQuality.from_class_id(class_id)
    assert results[0].confidence == pytest.approx(0.9)


def test_inspect_location_matches_box(tmp_path):
    inspector = _inspector(tmp_path, [(20, 30, 10, 12, 0, 0.9)])
    (result,) = inspector.inspect(_frame())
    assert result.location.width == pytest.approx(10)
    assert result.location.height == pytest.approx(12)
    assert result.location.x + result.location.width / 2 == pytest.approx(20)
    assert result.location.y + result.location.height / 2 == pytest.approx(30)


def test_inspect_uses_threshold(tmp_path):
    inspector = _inspector(
        tmp_path,
        [(10, 10, 6, 6, 0, 0.3), (40, 40, 6, 6, 1, 0.5)],
    )
    results = inspector.inspect(_frame())
    assert [r.quality for r in results] == [SolderQuality.INSUFFICIENT]


def test_inspect_component_sets_reference(tmp_path):
    inspector = _inspector(
        tmp_path,
        [(10, 10, 6, 6, 0, 0.8), (45, 45, 6, 6, 3, 0.7)],
    )
    results = inspector.inspect_component(_frame(), "U1")
    assert len(results) == 2
    assert all(r.component_ref == "U1" for r in results)


def test_inspect_without_model_is_empty(tmp_path):
    engine = InferenceEngine(ModelManager(tmp_path))
    assert SolderInspector(engine).inspect(_frame()) == []


def test_load_model_without_factory_raises(tmp_path):
    engine = InferenceEngine(ModelManager(tmp_path))
    with pytest.raises(InferenceError):
        SolderInspector(engine).load_model(tmp_path / "solder.onnx")