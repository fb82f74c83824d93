"""Concrete catalog and persistence collaborators."""
