"""Utility helpers: logging, exceptions, dates."""
