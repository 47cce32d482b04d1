"""config/ — Pydantic runtime settings."""
