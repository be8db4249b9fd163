"""Collector for CI test report uploads."""

__version__ = "0.1.0"
