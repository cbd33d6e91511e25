"""Wisdom core - addressing, payload construction, validity analysis."""
