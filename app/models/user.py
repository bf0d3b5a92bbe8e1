from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info (mirrored from the identity provider, which owns credentials)
    name: Optional[str] = None
    email: str = Field(unique=True, index=True)
    image: Optional[str] = None

    # Account Status
    is_active: bool = Field(default=True)
    is_superuser: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
