"""Notification application layer.

Use cases orchestrating the dispatch pipeline over the domain ports.
"""
