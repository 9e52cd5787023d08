from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal


class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    fee_balance: Decimal = Field(Decimal("0"), ge=0, description="Minimum balance to maintain")
    fee_per_year: Decimal = Field(Decimal("0"), ge=0, description="Annual tuition")


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    fee_balance: Optional[Decimal] = Field(None, ge=0)
    fee_per_year: Optional[Decimal] = Field(None, ge=0)


class CourseResponse(BaseModel):
    id: UUID
    name: str
    fee_balance: Decimal
    fee_per_year: Decimal
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
