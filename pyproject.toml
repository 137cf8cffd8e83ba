[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "qmstr"
version = "0.2.0"
description = "Build instrumentation, configuration and analysis helpers that record how build artefacts are derived from their sources."
requires-python = ">=3.10"
keywords = ["build", "instrumentation", "compliance", "spdx", "license", "ar", "build-graph"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
qmstr = "qmstr.instrument:main"

[tool.hatch.build.targets.wheel]
packages = ["qmstr"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
