"""Collections and the database registry."""

from cosmodb.infrastructure.persistence.collection import Collection
from cosmodb.infrastructure.persistence.database import SCHEMA_FROM_NAME, Database

__all__ = ["Collection", "Database", "SCHEMA_FROM_NAME"]
