from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint

class Cart(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "business_id", name="uq_cart_user_business"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = None

    # References
    user_id: int = Field(foreign_key="user.id", index=True)
    business_id: int = Field(foreign_key="business.id", index=True)

    # Derived from the items; rewritten after every item mutation
    total_cost: float = Field(default=0.0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class CartItem(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="uq_cart_item_product"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    cart_id: int = Field(foreign_key="cart.id", index=True)
    product_id: int = Field(foreign_key="product.id")

    # Cart Details
    quantity: int = Field(default=1, ge=1)

    # Snapshots taken when the item was added; never re-read from the catalog
    unit_price: float = Field(default=0.0)
    category: Optional[str] = Field(default=None, index=True)
    requirement_name: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
