"""Asset relationship graph and portfolio report generation for registered IP assets."""

__version__ = "0.1.0"
