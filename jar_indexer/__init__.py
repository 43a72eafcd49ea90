"""Decompile a JAR and index its types into class-index.json."""

__version__ = "1.0.0"
