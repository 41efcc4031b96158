"""Pydantic request and response models for the HSSE workflow API."""
