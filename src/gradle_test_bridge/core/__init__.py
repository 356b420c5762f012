"""Core models, logging and process-independent helpers."""
