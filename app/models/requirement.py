from typing import Optional
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Enum as SAEnum, Text, UniqueConstraint

class Necessity(str, Enum):
    REQUIRED = "Required"
    OPTIONAL = "Optional"

class RequirementTemplate(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Library entry
    name: str = Field(index=True)
    # May contain the business-name token, resolved per business on read
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    image: Optional[str] = None
    category: str = Field(index=True)
    necessity: Necessity = Field(
        default=Necessity.REQUIRED,
        sa_column=Column(SAEnum(Necessity, values_callable=lambda x: [e.value for e in x]))
    )

    # One-way flag: deprecated templates keep their links but cannot gain new ones
    is_deprecated: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class BusinessRequirement(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("business_id", "template_id", name="uq_business_template"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    business_id: int = Field(foreign_key="business.id", index=True)
    template_id: int = Field(foreign_key="requirementtemplate.id", index=True)

    # Per-business overrides
    description_override: Optional[str] = Field(default=None, sa_column=Column(Text))
    is_active: bool = Field(default=True)
    display_order: int = Field(default=0)

    # Origin tag, e.g. "admin"
    source: str = Field(default="admin")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
