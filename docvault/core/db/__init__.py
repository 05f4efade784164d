# (c) Copyright Datacraft, 2026
from .base import Base

__all__ = ["Base"]
