"""Template layout editor and camera alignment overlay for OMR answer sheets."""

__version__ = "0.1.0"
