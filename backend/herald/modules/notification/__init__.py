"""Notification module: multi-channel dispatch, preferences, templates and stats."""
