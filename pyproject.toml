[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "filesniff"
version = "0.1.0"
description = "Content sniffing helpers for JSON text, ELF binaries and Composite Document File containers"
requires-python = ">=3.10"
dependencies = []
keywords = ["file", "magic", "elf", "json", "cdf", "file-type", "detection"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["filesniff"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
