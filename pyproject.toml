[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rysteria"
version = "2.7.1"
description = "Wire protocol, UDP fragmentation and congestion-control primitives for a QUIC-based proxy"
requires-python = ">=3.10"
dependencies = []
keywords = ["proxy", "quic", "varint", "congestion-control", "brutal", "udp", "fragmentation"]
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
    "Topic :: Internet :: Proxy Servers",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rysteria"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
