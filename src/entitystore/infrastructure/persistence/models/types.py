"""Column types shared by the models."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSON documents keyed by field key; JSONB on PostgreSQL
JSONDocument = JSON().with_variant(JSONB(), "postgresql")
