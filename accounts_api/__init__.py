"""Accounts API: registration, session sign-in and profile storage."""
