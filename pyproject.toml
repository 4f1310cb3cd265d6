[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "firecore"
version = "0.1.0"
description = "Block polling with fork handling, chain configuration and block file comparison tools"
requires-python = ">=3.10"
dependencies = []
keywords = ["blockchain", "firehose", "block-poller", "forkdb", "reorg"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
firecore-battlefield = "firecore.battlefield:main"

[tool.hatch.build.targets.wheel]
packages = ["firecore"]

[tool.pytest.ini_options]
addopts = "-ra"
