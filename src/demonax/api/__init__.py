"""Read-only query API over the ingested store."""
