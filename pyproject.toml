[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ibomscope"
version = "0.1.0"
description = "PCB inspection toolkit: settings, frame buffering, detection decoding, solder and marking checks, data export and HTML/PDF reports"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["pcb", "ibom", "inspection", "microscope", "yolo", "solder", "eda", "report"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Manufacturing",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Electronic Design Automation (EDA)",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ibomscope"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
