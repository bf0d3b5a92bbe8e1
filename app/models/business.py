from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class Business(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)
    description: Optional[str] = None
    image: Optional[str] = None

    # Visibility in the public directory
    published: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
