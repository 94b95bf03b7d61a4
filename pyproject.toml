[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "llclauncher"
version = "0.1.15"
description = "Launcher that keeps the LLC Simplified Chinese localization of Limbus Company up to date and starts the game through Steam."
requires-python = ">=3.11"
keywords = ["limbus-company", "localization", "launcher", "steam", "updater", "7z"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Chinese (Simplified)",
    "Operating System :: Microsoft :: Windows",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "requests>=2.31",
    "jinja2>=3.1",
    "platformdirs>=4.0",
    "tomli-w>=1.0",
    "semver>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[project.scripts]
llc-launcher = "llclauncher.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["llclauncher"]

[tool.pytest.ini_options]
addopts = "-ra"
