"""Reading and checking text printed on components."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .inference import Box, InferenceEngine, PathLike

log = logging.getLogger(__name__)


@dataclass
class OCRResult:
    """Recognised text in one region of an image."""

    text: str = ""
    confidence: float = 0.0
    bbox: Box = field(default_factory=Box)


def string_similarity(a: str, b: str) -> float:
    """Case-insensitive Levenshtein similarity between 0.0 and 1.0."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0

    a_low, b_low = a.lower(), b.lower()
    previous = list(range(len(b_low) + 1))
    for i, ca in enumerate(a_low, start=1):
        current = [i]
        for j, cb in enumerate(b_low, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current

    return 1.0 - previous[-1] / max(len(a), len(b))


class OCREngine:
    """Reads component markings and compares them with BOM values."""

    def __init__(self, engine: InferenceEngine) -> None:
        self.engine = engine

    def load_model(self, model_path: PathLike) -> None:
        """Load the text recognition model into the engine."""
        log.info("Loading OCR model: %s", model_path)
        self.engine.load_model(model_path)

    def matches_expected(
        self, recognized: str, expected: str, similarity_threshold: float = 0.7
    ) -> bool:
        """Whether recognised text is close enough to the expected value."""
        if not recognized or not expected:
            return False
        return string_similarity(recognized, expected) >= similarity_threshold