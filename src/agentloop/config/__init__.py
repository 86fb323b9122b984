"""Configuration: runtime settings and iteration limits."""
