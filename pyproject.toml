[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "microceph"
version = "0.1"
description = "SQLite-backed cluster state for a small Ceph deployment: schema, disk, service and config records, and node removal checks"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = ["ceph", "cluster", "storage", "osd", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["microceph"]

[tool.pytest.ini_options]
addopts = "-ra"
