from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class SharedBusiness(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Publisher and the business whose cart is published
    user_id: int = Field(foreign_key="user.id", index=True)
    business_id: int = Field(foreign_key="business.id", index=True)

    # Listing Details
    name: str
    description: Optional[str] = None

    # Unpublishing deactivates the row; counters survive re-publishing
    is_active: bool = Field(default=True, index=True)

    # Engagement counters, only ever incremented in SQL
    view_count: int = Field(default=0)
    copy_count: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
