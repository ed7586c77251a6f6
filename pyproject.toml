[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eibvalidate"
version = "0.1.0"
description = "Validation rules for edge image definitions: image, OS, registry, Kubernetes and Elemental settings"
requires-python = ">=3.10"
keywords = ["image", "validation", "kubernetes", "helm", "edge", "definition"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Installation/Setup",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["eibvalidate"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
