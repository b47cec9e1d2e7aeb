"""EntityStore - schema-driven entity and record engine.

User-defined entity types with typed fields, validated records, safe
schema migrations with backfill, and atomic batch operations.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
