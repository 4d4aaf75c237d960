[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "asyncscope"
version = "0.1.0"
description = "Data model, configuration and event plumbing for collecting instrumentation of async tasks, resources and operations."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "async",
    "asyncio",
    "diagnostics",
    "instrumentation",
    "tracing",
    "debugging",
]
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
    "Framework :: AsyncIO",
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["asyncscope"]

[tool.hatch.build.targets.sdist]
include = [
    "asyncscope",
    "tests",
    "pyproject.toml",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
check_untyped_defs = true
