"""Adapters for SQLite persistence and the language-model provider."""
