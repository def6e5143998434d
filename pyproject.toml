[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sidecarclient"
version = "1.0.0rc3"
description = "Request building and validation for an application runtime sidecar: service invocation, state, locks, metadata and jobs"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "sidecar",
    "microservices",
    "state-store",
    "service-invocation",
    "distributed-lock",
    "cloudevents",
    "grpc-endpoint",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sidecarclient"]

[tool.hatch.build.targets.sdist]
include = ["sidecarclient", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
