"""Loaders turning exported CSV files into domain records."""
