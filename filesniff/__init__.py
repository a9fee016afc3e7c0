"""Helpers that describe JSON text, ELF binaries and Composite Document Files from their bytes."""

__version__ = "0.1.0"

__all__ = ["cdfinfo", "elfdefs", "elfnotes", "elfscan", "jsontext", "timefmt"]