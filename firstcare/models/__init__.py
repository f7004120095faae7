"""Database models."""

from firstcare.models.appointments import appointments
from firstcare.models.users import users

__all__ = [
    "appointments",
    "users",
]
