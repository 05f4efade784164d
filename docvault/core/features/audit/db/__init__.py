# (c) Copyright Datacraft, 2026
from .orm import AccessLogEntry

__all__ = [
	"AccessLogEntry",
]
