[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ibtopo"
version = "0.1.0"
description = "Store parsed InfiniBand fabric logs and infer host/switch topology from them"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["infiniband", "topology", "fabric", "network", "monitoring", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ibtopo"]

[tool.hatch.build.targets.sdist]
include = [
    "ibtopo",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
