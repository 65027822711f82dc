"""Organizational models: departments, officers, and sensitive locations."""

from typing import List

from pydantic import BaseModel, Field, field_validator

from civic_core_lib.models.complaint import Category, GeoPoint


class Department(BaseModel):
    """Organizational unit owning one or more complaint categories."""

    department_id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    categories: List[Category] = Field(default_factory=list)

    def owns(self, category: Category) -> bool:
        return category in self.categories


class Officer(BaseModel):
    """Department staff member who works complaints."""

    officer_id: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    department_id: str = Field(min_length=1, max_length=100)
    is_active: bool = True
    assigned_count: int = Field(default=0, ge=0, description="Current load metric")


class SensitiveLocation(BaseModel):
    """School, hospital or similar point whose proximity raises priority."""

    name: str = Field(min_length=1, max_length=200)
    point: GeoPoint

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Sensitive location name cannot be empty")
        return v.strip()


DEFAULT_DEPARTMENTS: List[Department] = [
    Department(department_id="roads", name="Road Department", categories=[Category.ROAD]),
    Department(department_id="water", name="Water Supply", categories=[Category.WATER]),
    Department(department_id="sanitation", name="Sanitation Department", categories=[Category.GARBAGE]),
    Department(department_id="electricity", name="Electricity Board", categories=[Category.ELECTRICITY]),
]
