"""Hookverify - multi-provider webhook signature verification."""

__version__ = "0.1.0"
