"""Configuration: paths, runtime settings and user-facing messages."""
