"""Shared helpers for request handling and time."""
