"""Storefront catalog query and mutation service."""

__version__ = "0.1.0"
