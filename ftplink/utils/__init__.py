"""Utility helpers for ftplink."""
