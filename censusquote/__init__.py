"""Census ingestion and age-banded premium quoting."""
