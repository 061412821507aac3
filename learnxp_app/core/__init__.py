"""Core infrastructure layer: extensions, configuration and bootstrap helpers."""
