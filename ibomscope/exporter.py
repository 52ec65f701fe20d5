"""Export of inspection records to CSV, JSON, placement and BOM files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Union

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

PLACEMENT_TITLE = "### PCB Inspector \u2014 Component Placement File ###"
PLACEMENT_HEADER = "# Ref    Val    Package    PosX    PosY    Rot    Side    Status"
PLACEMENT_SEPARATOR = "    "


class ExportError(Exception):
    """Raised when an export file cannot be written."""


class Layer(Enum):
    """Board side a component sits on."""

    FRONT = "F"
    BACK = "B"

    @property
    def side(self) -> str:
        return "top" if self is Layer.FRONT else "bottom"


@dataclass
class ComponentRecord:
    """Inspection data for one component."""

    reference: str = ""
    value: str = ""
    footprint: str = ""
    layer: Layer = Layer.FRONT
    status: str = ""
    defect_type: str = ""
    confidence: float = 0.0
    pos_x: float = 0.0
    pos_y: float = 0.0
    rotation: float = 0.0
    extra_fields: dict[str, str] = field(default_factory=dict)


class DataExporter:
    """Writes component records to several file formats."""

    def __init__(self, records: Optional[Iterable[ComponentRecord]] = None) -> None:
        self.records: list[ComponentRecord] = list(records or [])

    def _write(self, path: PathLike, text: str, kind: str) -> None:
        file_path = os.fspath(path)
        try:
            with open(file_path, "w", encoding="utf-8") as fh:
                fh.write(text)
        except OSError as exc:
            raise ExportError(f"Cannot open file: {file_path}") from exc
        log.info("DataExporter: %s exported to '%s'", kind, file_path)

    def export_csv(self, path: PathLike, delimiter: str = ",") -> None:
        """Write all records as delimited text."""
        header = [
            "Reference", "Value", "Footprint", "Layer", "Status",
            "DefectType", "Confidence", "PosX", "PosY", "Rotation",
        ]
        lines = [delimiter.join(header)]
        for r in self.records:
            lines.append(
                delimiter.join(
                    [
                        r.reference,
                        r.value,
                        r.footprint,
                        r.layer.value,
                        r.status,
                        r.defect_type,
                        f"{r.confidence:.2f}",
                        f"{r.pos_x:.3f}",
                        f"{r.pos_y:.3f}",
                        f"{r.rotation:.1f}",
                    ]
                )
            )
        self._write(path, "".join(line + "\n" for line in lines), "CSV")

    def export_json(self, path: PathLike, pretty: bool = True) -> None:
        """Write all records as a JSON document."""
        components = []
        for r in self.records:
            comp = {
                "reference": r.reference,
                "value": r.value,
                "footprint": r.footprint,
                "layer": r.layer.value,
                "status": r.status,
                "defectType": r.defect_type,
                "confidence": r.confidence,
                "position": {"x": r.pos_x, "y": r.pos_y},
                "rotation": r.rotation,
            }
            if r.extra_fields:
                comp["extra"] = dict(r.extra_fields)
            components.append(comp)

        root = {
            "exportDate": datetime.now().replace(microsecond=0).isoformat(),
            "totalComponents": len(self.records),
            "components": components,
        }
        if pretty:
            text = json.dumps(root, indent=2, sort_keys=True, ensure_ascii=False)
        else:
            text = json.dumps(
                root, separators=(",", ":"), sort_keys=True, ensure_ascii=False
            )
        self._write(path, text, "JSON")

    def export_placement(self, path: PathLike) -> None:
        """Write a placement file with positions, rotation and board side."""
        lines = [PLACEMENT_TITLE, PLACEMENT_HEADER]
        for r in self.records:
            lines.append(
                PLACEMENT_SEPARATOR.join(
                    [
                        r.reference,
                        r.value,
                        r.footprint,
                        f"{r.pos_x:.4f}",
                        f"{r.pos_y:.4f}",
                        f"{r.rotation:.1f}",
                        r.layer.side,
                        r.status,
                    ]
                )
            )
        self._write(path, "".join(line + "\n" for line in lines), "placement file")

    def export_bom(self, path: PathLike) -> None:
        """Write a BOM with a placed column for re-import."""
        lines = ["Reference,Value,Footprint,Layer,Placed"]
        for r in self.records:
            placed = "YES" if r.status == "placed" else "NO"
            lines.append(",".join([r.reference, r.value, r.footprint, r.layer.value, placed]))
        self._write(path, "".join(line + "\n" for line in lines), "BOM")

    def export_defects_csv(self, path: PathLike) -> None:
        """Write only the defective and missing components."""
        lines = ["Reference,Value,Footprint,DefectType,Confidence,PosX,PosY"]
        for r in self.records:
            if r.status not in ("defect", "missing"):
                continue
            lines.append(
                ",".join(
                    [
                        r.reference,
                        r.value,
                        r.footprint,
                        r.defect_type,
                        f"{r.confidence:.2f}",
                        f"{r.pos_x:.3f}",
                        f"{r.pos_y:.3f}",
                    ]
                )
            )
        self._write(path, "".join(line + "\n" for line in lines), "defects CSV")