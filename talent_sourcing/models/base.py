"""Declarative base shared by all sourcing models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def enum_values(enum_cls) -> list[str]:
    """Persist enum values ("queued") rather than member names ("QUEUED")."""
    return [member.value for member in enum_cls]
