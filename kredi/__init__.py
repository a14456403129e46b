"""Loan financial-state engine for small-business lending."""

__version__ = "0.1.0"
