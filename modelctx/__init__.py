"""JSON Schema draft 2020-12 resolution and validation, with related utilities."""

__version__ = "0.1.0"