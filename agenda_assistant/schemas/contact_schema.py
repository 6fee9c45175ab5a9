"""Contact directory data models."""

from pydantic import BaseModel


class ContactEntry(BaseModel):
    """Directory record: name (unique, case-insensitive) and email (unique)."""
    name: str
    email: str
