"""Utility helpers for taskbuffer."""
