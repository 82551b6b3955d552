[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clusterregistration"
version = "0.1.0"
description = "Managed cluster registration helpers: client certificate checks, feature gates, status conditions and hub clean-up"
requires-python = ">=3.10"
keywords = ["cluster", "registration", "kubernetes", "certificates", "feature-gates", "kubeconfig"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]
dependencies = [
    "cryptography>=42",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "cryptography>=42",
]

[tool.hatch.build.targets.wheel]
packages = ["clusterregistration"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 120
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
