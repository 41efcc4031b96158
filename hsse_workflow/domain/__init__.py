"""Domain layer for the HSSE incident workflow.

Pure models, errors and rule evaluation. Nothing in this package performs
I/O; persistence, identity and notification are reached through the
application ports.
"""
