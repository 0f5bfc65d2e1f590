"""Support chat backend: conversation orchestration over a language model."""

__version__ = "1.0.0"
