[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bookforge"
version = "0.4.21"
description = "Configuration handling and markdown preprocessing for books built from markdown files"
requires-python = ">=3.11"
keywords = ["book", "markdown", "preprocessor", "configuration", "toml"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Markup :: Markdown",
]
dependencies = [
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["bookforge"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
