[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bridgeinspect"
version = "0.1.0"
description = "HTTP-layer building blocks for a bridge defect inspection service: response envelope, request context, middleware, handlers, caching and configuration"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["bridge", "inspection", "defect", "http", "middleware", "cache"]
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
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["bridgeinspect"]

[tool.pytest.ini_options]
addopts = "-ra"
