# ibomscope

ibomscope is a set of building blocks for inspecting assembled printed
circuit boards under a microscope camera. It keeps the inspection
settings, buffers camera frames, decodes the output of a YOLO-style
detection model, and checks solder joints, component orientation and
printed markings. It also exports the results as data files and writes
reports.

## Modules

- **`ibomscope.config`**: The `Config` dataclass holds the camera, AI, UI,
  feature, live-tracking, calibration and BOM checkbox settings.
  - `Config.load(path=None)` reads a JSON file. If the file does not exist,
    it first writes one with the current settings.
  - `Config.save(path=None)` writes the settings as JSON.
  - `to_dict()` and `update_from_dict()` convert to and from the file layout.
  - Without a path, the file is `default_config_path()`. On Windows that is
    `%APPDATA%/MicroscopeIBOM/config.json`. Elsewhere it is
    `~/.config/MicroscopeIBOM/config.json`.
  - Invalid files or values raise `ConfigError`.
  - `ScaleMethod` (`NONE`, `HOMOGRAPHY`, `IBOM_PADS`) selects how the
    pixels-per-mm scale is tracked.
- **`ibomscope.framebuffer`**: `FrameBuffer` is a thread-safe ring of numpy
  frames.
  - `push()` never blocks. When the buffer is full, the oldest frame is
    overwritten and counted in `dropped_frames()`.
  - `pop(timeout_ms=0)` waits for a frame and returns `None` on timeout.
  - `try_pop()` returns `None` when the buffer is empty.
  - `len()`, `empty()`, `clear()` and `total_frames()` complete it.
- **`ibomscope.models`**: `ModelManager` registers the `.onnx` files in a
  directory, which is `models` by default.
  - Class labels come from the first model that has a `.txt` file of the same
    name, with one label per line.
  - `class_name(id)` falls back to `class_<id>`.
- **`ibomscope.inference`**: `InferenceEngine` runs a detection model through
  a session factory that you supply (see below).
  - `preprocess()` resizes a BGR frame to the model input and returns a
    1x3xHxW RGB float tensor in [0, 1].
  - `postprocess()` decodes a `[1, 4 + classes, N]` YOLOv8 output into
    `Detection` objects, with `Box` bounding boxes scaled back to the frame.
  - `nms_boxes()` is the greedy non-maximum suppression used by
    `postprocess()`.
  - `detect()` runs the whole pipeline and records `last_inference_ms`. It
    returns an empty list until a model is loaded.
  - Failures raise `InferenceError`.
- **`ibomscope.detector`**: `ComponentDetector` runs detection with its own
  thresholds. `is_orientation_correct()` compares two angles modulo 360 within
  a tolerance, which defaults to 15 degrees. `normalize_angle()` maps an angle
  into [0, 360).
- **`ibomscope.solder`**: `SolderInspector` turns detections into
  `SolderResult` values.
  - Each result's quality is a `SolderQuality`, mapped from the model class id
    with `SolderQuality.from_class_id`.
  - `quality_string()` gives a display name and `quality_color()` gives a BGR
    colour.
- **`ibomscope.ocr`**: `string_similarity()` is a case-insensitive Levenshtein
  similarity from 0.0 to 1.0. `OCREngine.matches_expected()` compares a read
  marking with the expected value; the default threshold is 0.7.
- **`ibomscope.exporter`**: `DataExporter` writes `ComponentRecord` lists in
  several formats:
  - `export_csv()` writes CSV with a delimiter you can choose.
  - `export_json()` writes JSON.
  - `export_placement()` writes a placement file.
  - `export_bom()` writes a BOM with a placed column.
  - `export_defects_csv()` writes only defective and missing components.
  - `Layer` marks the board side. Write failures raise `ExportError`.
- **`ibomscope.report`**: `ReportGenerator` builds a report from
  `InspectionResult` values according to a `ReportConfig`.
  - `compute_statistics()` returns a `Statistics` with counts and yield.
  - `html_content()` returns the HTML report as a string.
  - `generate_html()` and `generate_pdf()` write the report to a file. The PDF
    is A4 text in the Helvetica fonts.
  - `on_progress` can receive progress percentages.
  - `status_color()` gives the colour for a status.
  - Write failures raise `ReportError`.

## Supplying a model runtime

`InferenceEngine(model_manager, session_factory)` does not include a neural
network runtime. The `session_factory` is a callable that takes a model path
and returns an object with these methods:

- `get_inputs()`
- `get_outputs()`
- `run(output_names, feed)`

An ONNX Runtime `InferenceSession` has this interface. ONNX Runtime is not a
dependency of this package, so install it yourself if you want to use it.

## What it does not do

ibomscope does not:

- open cameras or capture video;
- correct lens distortion;
- parse iBOM HTML files;
- draw overlays;
- provide a graphical interface or any command-line command.

`OCREngine` has no text recognition model pipeline. It loads a model into the
engine and compares strings, but it does not read text from images.

## Installation

```
pip install .
```

## Example

```python
from ibomscope.exporter import ComponentRecord, DataExporter, Layer
from ibomscope.report import InspectionResult, ReportConfig, ReportGenerator
from ibomscope.ocr import string_similarity

records = [
    ComponentRecord(reference="R1", value="10k", footprint="0603",
                    layer=Layer.FRONT, status="placed", pos_x=12.5, pos_y=4.0),
    ComponentRecord(reference="C3", value="100n", footprint="0402",
                    status="defect", defect_type="bridge", confidence=0.91),
]
DataExporter(records).export_csv("inspection.csv")

report = ReportGenerator(
    ReportConfig(project_name="Demo board"),
    [InspectionResult(reference="R1", value="10k", footprint="0603", status="placed")],
)
print(report.compute_statistics())
report.generate_html("report.html")
report.generate_pdf("report.pdf")

print(string_similarity("LM358", "lm358"))  # 1.0
```

## Running the tests

```
pip install .[test]
pytest
```