"""Order change ingestion — the insert subscription and its supervisor."""
