[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "thundersnail"
version = "0.1.0"
description = "Host-side data structures and wire protocol for a processing-in-memory join engine"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "processing-in-memory",
    "pim",
    "join",
    "hash-table",
    "disjoint-set",
    "wire-protocol",
    "database",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["thundersnail"]

[tool.hatch.build.targets.sdist]
include = [
    "thundersnail",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
check_untyped_defs = true
