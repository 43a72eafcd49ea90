"""Structural parsing of decompiled Java source into a class index."""
