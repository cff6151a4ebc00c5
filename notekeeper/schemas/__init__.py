"""Schemas package - Pydantic models and value objects."""
