from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: str = Field(index=True)
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None  # Vendor page

    # Pricing (opaque; copied onto cart items when added)
    price: Optional[float] = None

    # Requirement this product satisfies
    template_id: Optional[int] = Field(default=None, foreign_key="requirementtemplate.id", index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
