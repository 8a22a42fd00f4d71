[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chvalue"
version = "0.1.0"
description = "Typed client-side values for the cells of a columnar analytics database"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "columnar", "values", "types", "decimal", "uuid"]
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
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["chvalue"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
