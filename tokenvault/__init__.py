"""Credential and session-token lifecycle service."""

__version__ = "0.1.0"
