"""OCV ledger snapshot storage."""
