[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "brushpaint"
version = "0.1.0"
description = "Layered raster painting model: layer tree, brush dabs, colour conversion and a zipped project file format"
requires-python = ">=3.10"
keywords = ["painting", "raster", "layers", "brush", "oklab", "hsv", "project-file"]
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
    "Topic :: Multimedia :: Graphics :: Editors :: Raster-Based",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["brushpaint"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
