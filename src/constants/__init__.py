"""
Constants package for the layout editor and camera overlay.

Use `from src.constants.layout import *` or import specific names as needed.
"""
from .layout import *  # noqa
