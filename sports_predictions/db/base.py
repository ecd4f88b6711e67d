"""
SQLAlchemy Base Definition Module.

This module defines the SQLAlchemy declarative base that all models inherit from.
The metadata carries a naming convention so constraint names are stable across
PostgreSQL and SQLite.
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base, registry

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Create a new SQLAlchemy mapper registry
mapper_registry = registry(metadata=MetaData(naming_convention=NAMING_CONVENTION))

# Create the base class for declarative class definitions
Base = declarative_base(metadata=mapper_registry.metadata)
