"""Credential lifecycle service for delegated-login accounts."""

__version__ = "0.1.0"
