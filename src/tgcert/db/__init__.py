"""PostgreSQL access for the ``postgres`` database backend."""

from tgcert.db.init import apply_schema, init_database

__all__ = ["apply_schema", "init_database"]
