"""Directive protocol and diff engine for locally-hosted coding models."""

__version__ = "0.1.0"
