[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bubbaloop"
version = "0.0.1rc1"
description = "Serving library for computer vision and AI robotics pipelines"
requires-python = ">=3.10"
keywords = ["computer-vision", "robotics", "pipelines", "streaming", "inference"]
classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Recognition",
]
dependencies = [
    "starlette",
    "uvicorn",
    "httpx",
    "psutil",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
    "httpx",
    "respx",
]

[project.scripts]
bubbaloop = "bubbaloop.cli:main"
bubbaloop-serve = "bubbaloop.server:main"

[tool.hatch.build.targets.wheel]
packages = ["bubbaloop"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
