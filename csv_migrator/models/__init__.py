"""API and event schemas."""
