"""
Package version.

This is the single source of the release number: hatchling reads it at
build time (``[tool.hatch.version]`` in pyproject.toml) and the package
re-exports it as ``cloudlog.__version__``.
"""

__version__ = "0.1.0"
