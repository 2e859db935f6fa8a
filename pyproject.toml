[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cdclsat"
version = "0.1.0"
description = "A conflict-driven clause-learning SAT solver with a DIMACS reader and command-line front end"
requires-python = ">=3.10"
dependencies = []
keywords = ["sat", "solver", "cdcl", "dimacs", "boolean satisfiability", "logic"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cdclsat = "cdclsat.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["cdclsat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
