"""Shared utilities: logging configuration and console progress display."""
