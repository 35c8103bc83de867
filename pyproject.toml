[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mockhttpd"
version = "0.1.0"
description = "HTTP mock server with a JSON management API, backed by MySQL"
requires-python = ">=3.10"
keywords = ["mock", "http", "testing", "stub", "api", "wsgi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Software Development :: Testing :: Mocking",
]
dependencies = [
    "sqlalchemy>=2.0",
    "werkzeug>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[project.scripts]
mockhttpd = "mockhttpd.server:main"

[tool.hatch.build.targets.wheel]
packages = ["mockhttpd"]

[tool.hatch.build.targets.sdist]
include = ["mockhttpd", "tests", "README.md", "pyproject.toml"]

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
warn_redundant_casts = true
