[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "modelctx"
version = "0.1.0"
description = "JSON Schema (draft 2020-12) resolution and validation, with feature sets and a subprocess transport"
requires-python = ">=3.10"
dependencies = []
keywords = ["json-schema", "validation", "draft-2020-12", "json-pointer"]
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
    "Topic :: File Formats :: JSON :: JSON Schema",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["modelctx"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
