"""API schemas (Pydantic)."""
