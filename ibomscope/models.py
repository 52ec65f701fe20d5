"""Registry of ONNX model files and their class labels."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

log = logging.getLogger(__name__)

MODEL_SUFFIX = ".onnx"
LABELS_SUFFIX = ".txt"

PathLike = Union[str, "os.PathLike[str]"]


class ModelManager:
    """Finds model files in a directory and maps class ids to names."""

    def __init__(self, models_directory: PathLike = "models") -> None:
        self.models_directory = os.fspath(models_directory)
        self._models: dict[str, str] = {}
        self._class_names: list[str] = []
        self.scan_models()

    def scan_models(self) -> None:
        """Register every ``.onnx`` file in the models directory.

        Class names are taken from the first model that has a ``.txt``
        file of the same name next to it.
        """
        self._models.clear()
        directory = Path(self.models_directory)

        if not directory.exists():
            log.warning("Models directory '%s' does not exist.", self.models_directory)
            return

        for entry in sorted(directory.iterdir()):
            if entry.is_file() and entry.suffix == MODEL_SUFFIX:
                self._models[entry.stem] = str(entry)
                log.debug("Found model: %s -> %s", entry.stem, entry)

        for path in self._models.values():
            labels = Path(path).with_suffix(LABELS_SUFFIX)
            if labels.exists():
                self.load_class_names(labels)
                break

        log.info("Found %d models in '%s'", len(self._models), self.models_directory)

    def model_path(self, name: str) -> Optional[str]:
        """Path of the named model, or ``None`` if it is unknown."""
        return self._models.get(name)

    def load_class_names(self, path: PathLike) -> None:
        """Read class names, one per line; blank lines are skipped."""
        with open(path, encoding="utf-8") as fh:
            names = [line.strip(" \t\r\n") for line in fh]
        self._class_names = [name for name in names if name]
        log.info("Loaded %d class names from '%s'", len(self._class_names), path)

    def class_name(self, class_id: int) -> str:
        """Name of a class id, or ``class_<id>`` when none is known."""
        if 0 <= class_id < len(self._class_names):
            return self._class_names[class_id]
        return f"class_{class_id}"

    def available_models(self) -> list[str]:
        """Names of all registered models."""
        return list(self._models)