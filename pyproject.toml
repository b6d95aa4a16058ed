[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rawpdb"
version = "0.1.0"
description = "Read-only access to the streams of MSF/PDB debug information files"
requires-python = ">=3.10"
dependencies = []
keywords = ["pdb", "msf", "codeview", "debug information", "symbols"]
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
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rawpdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
