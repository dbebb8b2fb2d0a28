[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ingress-aws"
version = "0.1.0"
description = "AWS load balancer, target group and certificate helpers for Kubernetes ingress controllers"
requires-python = ">=3.10"
keywords = ["aws", "kubernetes", "ingress", "load-balancer", "autoscaling", "acm"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
    "cryptography",
]

[tool.hatch.build.targets.wheel]
packages = ["ingress_aws"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
