"""Read-only HTTP API over the published read models."""
