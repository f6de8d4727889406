"""Idempotent removal of a Salesforce user from a permission set."""

__version__ = "0.1.0"
