[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tubdb"
version = "0.1.0"
description = "An in-memory B+ tree index with query executors and a small plan optimizer"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "b+tree", "index", "query-execution", "optimizer"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tubdb"]

[tool.pytest.ini_options]
addopts = "-ra"
