[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minispim"
version = "0.1.0"
description = "A single-cycle MIPS datapath simulator with an interactive command console"
requires-python = ">=3.10"
dependencies = []
keywords = ["mips", "simulator", "datapath", "emulator", "cpu"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
minispim = "minispim.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["minispim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
