"""
Lookup Schemas for the Water Permit Portal
Status badges and enum option lists served to the frontend
"""

from pydantic import BaseModel, Field
from typing import List


class StatusBadge(BaseModel):
    """Display mapping for a status code"""
    code: str = Field(description="Canonical status code (or the raw input when unrecognised)")
    label: str = Field(description="Human readable label")
    category: str = Field(description="Visual category: neutral, info, warning, success, danger, unknown")

    class Config:
        frozen = True


class EnumOption(BaseModel):
    value: str
    label: str


class EnumOptionsResponse(BaseModel):
    """All selectable values for one enum"""
    name: str
    options: List[EnumOption]
