[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "busplanner"
version = "0.1.0"
description = "Bus route planning over GeoJSON transit data, with transfer search, an HTTP API and a MessagePack converter"
requires-python = ">=3.11"
keywords = ["gis", "geojson", "transit", "bus", "route-planning", "a-star", "messagepack"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Framework :: Flask",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask",
    "shapely",
    "msgpack",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
busplanner-server = "busplanner.server:main"
busplanner-convert = "busplanner.convert:main"

[tool.hatch.build.targets.wheel]
packages = ["busplanner"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
ignore_missing_imports = true
