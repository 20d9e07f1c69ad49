[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ztoolkit"
version = "0.1.0"
description = "Small building blocks for media servers: base64, object pools, GOP ring buffers and tickers"
requires-python = ">=3.10"
dependencies = []
keywords = ["base64", "object-pool", "ring-buffer", "gop-cache", "timer", "streaming"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ztoolkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
