"""Exporter service package.

Re-exports all public symbols::

    from urlchecker.services.exporter import Exporter
"""

from .service import Exporter


__all__ = [
    "Exporter",
]
