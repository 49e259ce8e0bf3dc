[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "waystation"
version = "0.1.0"
description = "Self-hosted travel and trip planner with a JSON API and a web dashboard"
requires-python = ">=3.10"
keywords = ["travel", "trips", "planner", "self-hosted", "sqlite", "wsgi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Scheduling",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
waystation = "waystation.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["waystation"]

[tool.pytest.ini_options]
addopts = "-ra"
