"""Nearby bars lookup service."""
