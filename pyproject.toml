[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vyx"
version = "0.1.0"
description = "Route annotation scanner, binary IPC framing and worker infrastructure for a polyglot HTTP gateway"
requires-python = ">=3.10"
keywords = [
    "gateway",
    "ipc",
    "unix-domain-socket",
    "msgpack",
    "jwt",
    "json-schema",
    "routing",
    "workers",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "msgpack>=1.0",
    "pyjwt>=2.8",
    "jsonschema>=4.17",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[project.scripts]
vyx-hello-worker = "vyx.hello_worker:main"

[tool.hatch.build.targets.wheel]
packages = ["vyx"]

[tool.hatch.build.targets.sdist]
include = ["vyx", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
