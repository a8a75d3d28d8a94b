"""Operator command-line helpers."""
