"""
Application package initializer.

This package contains the main entrypoint for the API and its
submodules: ``core`` (configuration, logging, errors and
storage), ``schemas`` (pydantic models), ``services`` (business logic)
and ``api`` (HTTP routes).
"""

from .main import app  # noqa: F401
