"""Deployable overlay services (reader and writer)."""
