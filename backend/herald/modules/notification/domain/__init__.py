"""Notification domain layer.

Entities, aggregates, value objects, enums, errors and ports of the
notification dispatch engine. Nothing here performs I/O.
"""
