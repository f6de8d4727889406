"""Salesforce REST access."""

from permset_revoker.salesforce.client import (
    LookupResult,
    SalesforceClient,
    assignment_query,
    user_by_username_query,
)

__all__ = [
    "LookupResult",
    "SalesforceClient",
    "assignment_query",
    "user_by_username_query",
]
