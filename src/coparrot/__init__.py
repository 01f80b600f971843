"""
Top-level package for coparrot.

The ``coparrot`` command is defined in :mod:`coparrot.cli`; the squawk
engine lives in :mod:`coparrot.squawk`.
"""

__all__ = ["__version__"]

__version__ = "1.0.0"
