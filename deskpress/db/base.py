from advanced_alchemy.base import UUIDAuditBase


class Base(UUIDAuditBase):
    """Base model with UUID primary key and created_at/updated_at audit columns."""

    __abstract__ = True
