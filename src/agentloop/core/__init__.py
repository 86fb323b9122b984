"""Core domain: models, memory, context assembly and the execution loop."""
