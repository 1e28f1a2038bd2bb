[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sti"
version = "0.200.0"
description = "Byte masks, FxHash hashing, a simulated bump arena and a group-probed open-addressing hash map"
requires-python = ">=3.10"
dependencies = []
keywords = ["arena", "allocator", "hash map", "fxhash", "open addressing", "byte mask"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sti"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
