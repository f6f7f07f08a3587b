"""Chronolog CLI package."""
