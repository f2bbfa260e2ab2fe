"""
AccessScout package initializer.
Defines package version and exposes the engine facade.
"""
__version__ = "0.3.0"

from access_scout.engine import Engine  # noqa: E402

__all__ = ["Engine", "__version__"]
