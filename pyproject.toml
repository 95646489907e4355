[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "livesrt"
version = "0.1.0"
description = "Building blocks for a live stream relay server: logging, locks, a ring buffer, a small HTTP client, publisher and relay maps, relay managers and a polling worker group"
requires-python = ">=3.10"
dependencies = []
keywords = ["streaming", "live", "relay", "publisher", "ring-buffer", "http-client"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["livesrt"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
