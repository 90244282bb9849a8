# tutorslot/api/__init__.py
# This file makes the api directory a Python package.

from . import session

__all__ = ["session"]
