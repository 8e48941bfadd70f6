"""Versioned schema definitions, one vN.py module per version."""
