"""Concrete adapters wiring application ports to built-in implementations."""

from __future__ import annotations

from .javac import JavacCompiler
from .zip_writer import ZipArchiveWriter

__all__ = [
    "JavacCompiler",
    "ZipArchiveWriter",
]
