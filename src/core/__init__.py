"""Configuration, persistence and validation."""
