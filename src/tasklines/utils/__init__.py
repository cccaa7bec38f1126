"""Utility helpers for tasklines."""
