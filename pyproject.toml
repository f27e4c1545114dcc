[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lyracodec"
version = "0.1.0"
description = "Building blocks of a low-bitrate neural speech codec: vector quantization, dilated causal convolution layers and 16-bit WAV I/O."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["speech", "codec", "vector-quantization", "convolution", "wav", "audio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Speech",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["lyracodec"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
