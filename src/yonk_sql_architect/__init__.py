"""SQL Architect: schema registry, table tagging and LLM-assisted SQL generation."""

__version__ = "0.1.0"
