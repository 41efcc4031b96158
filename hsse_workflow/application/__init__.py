"""Application layer for the HSSE workflow.

Holds the ports (interfaces to external collaborators), DTOs and the
services that orchestrate domain rules against those ports.
"""
