[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gositools"
version = "0.1.0"
description = "Event telemetry (labels, spans, metrics, log output, OpenCensus JSON message types) and concurrent Go source tree walking"
requires-python = ">=3.10"
dependencies = []
keywords = ["telemetry", "tracing", "metrics", "logging", "opencensus", "filesystem", "walk"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gositools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
