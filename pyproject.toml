[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "svreads"
version = "0.1.0"
description = "Read SAM/BAM alignments, parse library configurations and classify read pairs for structural variant detection"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "bioinformatics",
    "genomics",
    "sam",
    "bam",
    "paired-end",
    "structural-variants",
    "fastq",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["svreads*"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
