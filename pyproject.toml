[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kaspaindex"
version = "0.1.0"
description = "Data models, transaction filter rules, payload analysis, checkpointing and SQL statements for a Kaspa block indexer database"
requires-python = ">=3.10"
keywords = ["kaspa", "indexer", "blockchain", "postgresql", "bloom-filter", "trie", "payload"]
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
    "Topic :: Database",
    "Typing :: Typed",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kaspaindex"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
