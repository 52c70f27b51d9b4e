"""Checker service package.

Re-exports all public symbols::

    from urlchecker.services.checker import Checker, RunReport
"""

from .service import Checker, RunReport


__all__ = [
    "Checker",
    "RunReport",
]
