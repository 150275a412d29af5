[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "agora"
version = "0.1.0"
description = "Serve a directory of files over HTTP, with optional Lightning Network paywalls"
requires-python = ">=3.10"
keywords = ["http", "file-server", "lightning", "paywall", "wsgi"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "pyyaml",
    "markdown",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
agora = "agora.server:main"
agora-prerelease = "agora.prerelease:main"

[tool.setuptools.packages.find]
include = ["agora*"]

[tool.pytest.ini_options]
addopts = "-ra"
