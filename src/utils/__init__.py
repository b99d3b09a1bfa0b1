"""Formatting and plain-text report rendering."""
