"""Infrastructure for the HSSE workflow: stubs, adapters and observability."""
