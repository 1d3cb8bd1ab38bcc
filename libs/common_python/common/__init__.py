"""Shared library for the overlay reader/writer services.

Holds the pieces both services use unchanged: env file resolution and
settings loading, the bearer gate, request validation helpers, the
connection provider, the response envelope, and process startup.
"""
