"""Component detection and orientation checks on top of the inference engine."""

from __future__ import annotations

import math
from typing import Any

from .inference import Detection, InferenceEngine, PathLike


def normalize_angle(angle: float) -> float:
    """Map an angle in degrees into ``[0, 360)``."""
    result = math.fmod(angle, 360.0)
    if result < 0:
        result += 360.0
    return result


class ComponentDetector:
    """Detects electronic components on a PCB with a YOLO-style model."""

    def __init__(self, engine: InferenceEngine) -> None:
        self.engine = engine
        self.confidence_threshold = 0.5
        self.nms_threshold = 0.45

    def load_model(self, model_path: PathLike) -> None:
        """Load the component detection model into the engine."""
        self.engine.load_model(model_path)

    def detect(self, frame: Any) -> list[Detection]:
        """Detect components in a frame with the detector's thresholds."""
        return self.engine.detect(frame, self.confidence_threshold, self.nms_threshold)

    def is_orientation_correct(
        self, detected: float, expected: float, tolerance: float = 15.0
    ) -> bool:
        """Whether two angles differ by at most ``tolerance`` degrees, wrapping at 360."""
        diff = abs(normalize_angle(detected) - normalize_angle(expected))
        if diff > 180.0:
            diff = 360.0 - diff
        return diff <= tolerance