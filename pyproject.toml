[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blockdb"
version = "0.1.0"
description = "Block-structured record files: a buffered block layer, heap files, a B+ tree index and external merge sort"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "database",
    "block file",
    "buffer manager",
    "heap file",
    "b+ tree",
    "external sort",
    "merge sort",
]
classifiers = [
    "Development Status :: 4 - Beta",
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
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
blockdb-heap = "blockdb.heapfile:main"
blockdb-bplus = "blockdb.bplus.tree:main"
blockdb-sort = "blockdb.extsort.runner:main"

[tool.hatch.build.targets.wheel]
packages = ["blockdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
