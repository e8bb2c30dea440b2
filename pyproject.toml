[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mnthreads"
version = "0.1.0"
description = "An M:N user-thread runtime with cooperative round-robin switching inside kernel-thread groups"
requires-python = ">=3.10"
dependencies = []
keywords = ["threads", "scheduler", "m:n", "round-robin", "cooperative"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mnthreads"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
