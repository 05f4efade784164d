# (c) Copyright Datacraft, 2026
"""Declarative base shared by all ORM models."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
	pass
