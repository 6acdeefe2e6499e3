[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "crashkit"
version = "0.1.0"
description = "Filesystem path helpers, lock files and ELF build-id extraction for crash reporting"
requires-python = ">=3.10"
dependencies = []
keywords = ["crash", "elf", "build-id", "debug-id", "paths", "file-lock"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: Microsoft :: Windows",
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
packages = ["crashkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
