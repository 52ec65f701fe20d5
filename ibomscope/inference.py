"""Object detection on camera frames with a YOLO-style ONNX model."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np

from .models import ModelManager

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_INPUT_SIZE = (640, 640)  # (width, height) of a standard YOLO input
NUM_BOX_ROWS = 4  # cx, cy, w, h precede the class scores


class InferenceError(Exception):
    """Raised when a model cannot be loaded or run."""


@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle in image coordinates."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def area(self) -> float:
        return self.width * self.height

    def intersection_area(self, other: Box) -> float:
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.x + self.width, other.x + other.width)
        bottom = min(self.y + self.height, other.y + other.height)
        if right <= left or bottom <= top:
            return 0.0
        return (right - left) * (bottom - top)


@dataclass
class Detection:
    """A single detected object."""

    class_id: int = -1
    class_name: str = ""
    confidence: float = 0.0
    bbox: Box = field(default_factory=Box)
    angle: float = 0.0


def _overlap(a: Box, b: Box) -> float:
    """Jaccard index of two boxes; two empty boxes count as identical."""
    area_a, area_b = a.area, b.area
    if area_a + area_b <= 0:
        return 1.0
    inter = a.intersection_area(b)
    union = area_a + area_b - inter
    return inter / union


def nms_boxes(
    boxes: Sequence[Box],
    scores: Sequence[float],
    score_threshold: float,
    nms_threshold: float,
) -> list[int]:
    """Greedy non-maximum suppression.

    Boxes scoring strictly above ``score_threshold`` are visited in order of
    descending score (ties keep input order); a box is kept when its overlap
    with every box already kept is at most ``nms_threshold``. Returns the
    indices of the kept boxes in the order they were kept.
    """
    if len(boxes) != len(scores):
        raise ValueError("boxes and scores must have the same length")

    candidates = sorted(
        (i for i, score in enumerate(scores) if score > score_threshold),
        key=lambda i: -scores[i],
    )
    kept: list[int] = []
    for idx in candidates:
        if all(_overlap(boxes[idx], boxes[k]) <= nms_threshold for k in kept):
            kept.append(idx)
    return kept


def _resize_bilinear(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bilinear resize with pixel-centre alignment; returns float64."""
    src = image.astype(np.float64)
    src_h, src_w = src.shape[:2]
    if (src_w, src_h) == (width, height):
        return src

    def axis(dst: int, size: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        coords = (np.arange(dst) + 0.5) * (size / dst) - 0.5
        coords = np.clip(coords, 0, size - 1)
        lo = np.floor(coords).astype(np.intp)
        hi = np.minimum(lo + 1, size - 1)
        return lo, hi, coords - lo

    y0, y1, wy = axis(height, src_h)
    x0, x1, wx = axis(width, src_w)
    wx = wx[np.newaxis, :, np.newaxis]
    wy = wy[:, np.newaxis, np.newaxis]

    top = src[y0[:, None], x0[None, :]] * (1 - wx) + src[y0[:, None], x1[None, :]] * wx
    bottom = src[y1[:, None], x0[None, :]] * (1 - wx) + src[y1[:, None], x1[None, :]] * wx
    return top * (1 - wy) + bottom * wy


SessionFactory = Callable[[str], Any]


class InferenceEngine:
    """Runs a detection model and turns its raw output into detections.

    ``session_factory`` takes a model path and returns a session with the
    ``get_inputs()``, ``get_outputs()`` and ``run(output_names, feed)``
    interface of an ONNX Runtime inference session.
    """

    def __init__(
        self,
        model_manager: ModelManager,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.model_manager = model_manager
        self.session_factory = session_factory
        self.input_size: tuple[int, int] = DEFAULT_INPUT_SIZE
        self.last_inference_ms = 0.0
        self._session: Any = None
        self._input_names: list[str] = []
        self._output_names: list[str] = []
        self._ready = False

    def load_model(self, model_path: PathLike) -> None:
        """Open a model and read its input and output layout."""
        if self.session_factory is None:
            raise InferenceError("engine has no session factory; cannot load models")

        path = os.fspath(model_path)
        log.info("Loading model: %s", path)
        try:
            session = self.session_factory(path)
            inputs = list(session.get_inputs())
            outputs = list(session.get_outputs())
        except Exception as exc:
            self._ready = False
            raise InferenceError(f"failed to load model '{path}': {exc}") from exc

        if not inputs:
            self._ready = False
            raise InferenceError(f"model '{path}' has no inputs")

        self._session = session
        self._input_names = [inp.name for inp in inputs]
        self._output_names = [out.name for out in outputs]

        shape = list(inputs[0].shape)
        if len(shape) >= 4 and isinstance(shape[2], int) and isinstance(shape[3], int):
            self.input_size = (shape[3], shape[2])

        self._ready = True
        log.info(
            "Model loaded: %d inputs, %d outputs, input size %dx%d",
            len(self._input_names),
            len(self._output_names),
            *self.input_size,
        )

    def is_ready(self) -> bool:
        """Whether a model is loaded and inference can run."""
        return self._ready

    def preprocess(self, frame: Any) -> np.ndarray:
        """Resize a BGR frame and lay it out as a 1x3xHxW RGB tensor in [0, 1]."""
        image = np.asarray(frame)
        if image.ndim != 3 or image.shape[2] != 3 or image.size == 0:
            raise ValueError("frame must be a non-empty HxWx3 BGR image")

        width, height = self.input_size
        resized = _resize_bilinear(image, width, height)
        if np.issubdtype(image.dtype, np.integer):
            info = np.iinfo(image.dtype)
            resized = np.clip(np.rint(resized), info.min, info.max)

        scaled = (resized / 255.0).astype(np.float32)
        rgb = scaled[..., ::-1]
        return np.ascontiguousarray(rgb.transpose(2, 0, 1))[np.newaxis]

    def postprocess(
        self,
        output: Any,
        original_size: tuple[int, int],
        conf_threshold: float,
        nms_threshold: float,
    ) -> list[Detection]:
        """Decode a ``[1, 4 + classes, N]`` output into detections.

        ``original_size`` is the ``(width, height)`` of the source frame;
        boxes are scaled back to it.
        """
        data = np.asarray(output, dtype=np.float64)
        if data.ndim < 3:
            return []
        data = data[0]
        rows, cols = data.shape[0], data.shape[1]
        if rows < NUM_BOX_ROWS or cols == 0:
            return []

        in_w, in_h = self.input_size
        scale_x = original_size[0] / in_w
        scale_y = original_size[1] / in_h

        scores = data[NUM_BOX_ROWS:]
        if scores.shape[0] > 0:
            best_idx = scores.argmax(axis=0)
            best_conf = scores.max(axis=0)
            no_class = best_conf <= 0
            best_idx = np.where(no_class, -1, best_idx)
            best_conf = np.where(no_class, 0.0, best_conf)
        else:
            best_idx = np.full(cols, -1)
            best_conf = np.zeros(cols)

        boxes: list[Box] = []
        confidences: list[float] = []
        class_ids: list[int] = []
        for cx, cy, w, h, conf, cls in zip(
            data[0], data[1], data[2], data[3], best_conf, best_idx
        ):
            if conf >= conf_threshold:
                boxes.append(
                    Box(
                        float((cx - w / 2.0) * scale_x),
                        float((cy - h / 2.0) * scale_y),
                        float(w * scale_x),
                        float(h * scale_y),
                    )
                )
                confidences.append(float(conf))
                class_ids.append(int(cls))

        int_boxes = [Box(int(b.x), int(b.y), int(b.width), int(b.height)) for b in boxes]
        kept = nms_boxes(int_boxes, confidences, conf_threshold, nms_threshold)

        return [
            Detection(
                class_id=class_ids[i],
                class_name=self.model_manager.class_name(class_ids[i]),
                confidence=confidences[i],
                bbox=boxes[i],
            )
            for i in kept
        ]

    def detect(
        self,
        frame: Any,
        confidence_threshold: float = 0.5,
        nms_threshold: float = 0.45,
    ) -> list[Detection]:
        """Run the loaded model on a frame; empty when no model is loaded."""
        if not self._ready or self._session is None:
            return []

        start = time.perf_counter()
        image = np.asarray(frame)
        tensor = self.preprocess(image)
        try:
            outputs = self._session.run(self._output_names, {self._input_names[0]: tensor})
        except Exception as exc:
            raise InferenceError(f"inference failed: {exc}") from exc

        if not outputs:
            detections: list[Detection] = []
        else:
            original_size = (image.shape[1], image.shape[0])
            detections = self.postprocess(
                outputs[0], original_size, confidence_threshold, nms_threshold
            )

        self.last_inference_ms = (time.perf_counter() - start) * 1000.0
        return detections