"""Shared async helpers."""
