"""Solder joint quality classification on top of the inference engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .inference import Box, InferenceEngine, PathLike

log = logging.getLogger(__name__)

SOLDER_NMS_THRESHOLD = 0.45


class SolderQuality(Enum):
    """Solder joint quality classes, in the order of the model's class ids."""

    GOOD = "good"  # well-formed joint
    INSUFFICIENT = "insufficient"  # too little solder
    EXCESS = "excess"  # too much solder
    BRIDGE = "bridge"  # solder bridge between pads
    COLD = "cold"  # cold or cracked joint
    MISSING = "missing"  # no solder at all
    UNKNOWN = "unknown"

    @classmethod
    def from_class_id(cls, class_id: int) -> SolderQuality:
        """Quality for a model class id; unknown ids map to ``UNKNOWN``."""
        return _BY_CLASS_ID.get(class_id, cls.UNKNOWN)


_BY_CLASS_ID: dict[int, SolderQuality] = {
    0: SolderQuality.GOOD,
    1: SolderQuality.INSUFFICIENT,
    2: SolderQuality.EXCESS,
    3: SolderQuality.BRIDGE,
    4: SolderQuality.COLD,
    5: SolderQuality.MISSING,
}

_LABELS: dict[SolderQuality, str] = {
    SolderQuality.GOOD: "Good",
    SolderQuality.INSUFFICIENT: "Insufficient",
    SolderQuality.EXCESS: "Excess",
    SolderQuality.BRIDGE: "Bridge",
    SolderQuality.COLD: "Cold Joint",
    SolderQuality.MISSING: "Missing",
    SolderQuality.UNKNOWN: "Unknown",
}

# BGR colours for rendering
_COLORS: dict[SolderQuality, tuple[int, int, int]] = {
    SolderQuality.GOOD: (0, 255, 0),  # green
    SolderQuality.INSUFFICIENT: (0, 165, 255),  # orange
    SolderQuality.EXCESS: (0, 255, 255),  # yellow
    SolderQuality.BRIDGE: (0, 0, 255),  # red
    SolderQuality.COLD: (255, 0, 255),  # magenta
    SolderQuality.MISSING: (0, 0, 200),  # dark red
    SolderQuality.UNKNOWN: (128, 128, 128),  # gray
}


def quality_string(quality: SolderQuality) -> str:
    """Human-readable name of a solder quality."""
    return _LABELS.get(quality, "Unknown")


def quality_color(quality: SolderQuality) -> tuple[int, int, int]:
    """BGR colour used to draw a solder quality."""
    return _COLORS.get(quality, _COLORS[SolderQuality.UNKNOWN])


@dataclass
class SolderResult:
    """Inspection result for a single solder joint."""

    location: Box = field(default_factory=Box)
    quality: SolderQuality = SolderQuality.UNKNOWN
    confidence: float = 0.0
    component_ref: str = ""
    pin_number: str = ""


class SolderInspector:
    """Classifies solder joint quality with a trained detection model."""

    def __init__(self, engine: InferenceEngine) -> None:
        self.engine = engine
        self.confidence_threshold = 0.4

    def load_model(self, model_path: PathLike) -> None:
        """Load the solder inspection model into the engine."""
        log.info("Loading solder inspection model: %s", model_path)
        self.engine.load_model(model_path)

    def inspect(self, frame: Any) -> list[SolderResult]:
        """Inspect all solder joints visible in a frame."""
        detections = self.engine.detect(
            frame, self.confidence_threshold, SOLDER_NMS_THRESHOLD
        )
        return [
            SolderResult(
                location=det.bbox,
                quality=SolderQuality.from_class_id(det.class_id),
                confidence=det.confidence,
            )
            for det in detections
        ]

    def inspect_component(self, roi: Any, component_ref: str) -> list[SolderResult]:
        """Inspect the joints of one component, tagging results with its reference."""
        results = self.inspect(roi)
        for result in results:
            result.component_ref = component_ref
        return results