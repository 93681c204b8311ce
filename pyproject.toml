[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dzos"
version = "0.1.0"
description = "Model of a small x86-64 kernel's user runtime: syscall ABI, string and printf semantics, free-list heap, ELF loading and process table"
requires-python = ">=3.10"
dependencies = []
keywords = ["operating-system", "kernel", "elf", "libc", "malloc", "printf", "process-table"]
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
    "Topic :: System :: Operating System",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["dzos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
