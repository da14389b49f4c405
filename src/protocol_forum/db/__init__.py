"""Database helpers for the local vote ledger store."""
