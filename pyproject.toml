[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "brunsli"
version = "0.1.0"
description = "JPEG parsing and Huffman coding building blocks for the Brunsli compact JPEG format"
requires-python = ">=3.10"
dependencies = []
keywords = ["jpeg", "brunsli", "huffman", "compression", "image"]
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
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: System :: Archiving :: Compression",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["brunsli"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
