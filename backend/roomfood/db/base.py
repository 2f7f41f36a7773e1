"""
Database base configuration
Imports all models to ensure they're registered with SQLModel metadata
"""

from sqlmodel import SQLModel

# Import all models so they're registered with SQLModel.metadata
from roomfood.db.models import (
    User,
    Listing,
    Booking,
    Review,
)

# Export Base for use in init_db.py
Base = SQLModel.metadata

__all__ = ["Base", "SQLModel", "User", "Listing", "Booking", "Review"]
