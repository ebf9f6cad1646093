[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blastbot"
version = "0.1.0"
description = "Reads an 8x8 block-puzzle board from an Android screenshot, searches for the best three moves and plays them over adb"
requires-python = ">=3.10"
keywords = ["block puzzle", "puzzle", "bot", "adb", "solver"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Puzzle Games",
]
dependencies = [
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
blastbot = "blastbot.bot:main"

[tool.hatch.build.targets.wheel]
packages = ["blastbot"]

[tool.pytest.ini_options]
addopts = "-ra"
