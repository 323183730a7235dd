"""Compilation of data elements into assembled model objects."""
