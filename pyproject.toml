[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jisweb"
version = "0.1.0"
description = "A small HTTP server with cookie sessions, W3C access logging, a binary settings file and a page-script registry"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "web server", "sessions", "cookies", "w3c log", "ebcdic"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
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
test = ["pytest"]

[project.scripts]
jisweb = "jisweb.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["jisweb"]

[tool.pytest.ini_options]
addopts = "-ra"
