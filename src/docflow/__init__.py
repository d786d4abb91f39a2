"""Docflow - project persistence and synchronization.

This package keeps documentation projects consistent across a device-local
store and an optional authenticated cloud store, and propagates change
signals to every live view that reads them.
"""

__version__ = "0.1.0"
