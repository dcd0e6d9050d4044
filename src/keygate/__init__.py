"""Keygate — accounts and API keys for a small multi-tenant JSON API.

Creates, updates, deletes and looks up accounts, issues one opaque API
key per account, and resolves the x-api-key header of every protected
request to the account that owns it.
"""

__version__ = "0.1.0"
