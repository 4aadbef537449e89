[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bento_indexer"
version = "0.1.0"
description = "Types, database models and storage helpers for indexing blockchain blocks, events and transactions"
requires-python = ">=3.10"
keywords = ["indexer", "blockchain", "blocks", "events", "transactions", "sqlalchemy"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "sqlalchemy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["bento_indexer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
