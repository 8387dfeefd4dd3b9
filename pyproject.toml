[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "payhost"
version = "0.1.0"
description = "Building blocks for a small payment-hosting web application: config, structured logging, templates and helpers, redirects, scheduling, visitor stats and payment webhook events."
requires-python = ">=3.10"
keywords = [
    "web",
    "templates",
    "logging",
    "payments",
    "webhooks",
    "stripe",
    "square",
    "paypal",
]
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
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "jinja2>=3.1",
    "markupsafe>=2.1",
    "werkzeug>=2.3",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[tool.hatch.build.targets.wheel]
packages = ["payhost"]

[tool.hatch.build.targets.sdist]
include = ["payhost", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
