[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "courierhub"
version = "0.1.0"
description = "Order service for a courier delivery platform: order life cycle, role-based access, service clients and an HTTP API"
requires-python = ">=3.10"
dependencies = [
    "flask",
]
keywords = ["delivery", "orders", "courier", "http", "api", "flask"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: Flask",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
courierhub-orders = "courierhub.order_api:main"

[tool.hatch.build.targets.wheel]
packages = ["courierhub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
