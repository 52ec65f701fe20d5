"""PCB inspection toolkit: settings, frame buffering, detection decoding, solder and marking checks, export and reports."""

__version__ = "0.1.0"