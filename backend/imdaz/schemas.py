"""Pydantic response schemas used by the API.

Request bodies are read as plain JSON objects and checked by the
services, so only outgoing shapes that must hide columns live here.
"""

from datetime import datetime
from pydantic import BaseModel


class UserOut(BaseModel):
    """Public view of a user (no password hash)."""
    id: int
    nome: str
    email: str
    created_at: datetime
    updated_at: datetime
