"""fastcomp: body-composition and fast-effectiveness analytics."""

__version__ = "0.1.0"
