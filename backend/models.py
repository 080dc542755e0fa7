from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime


class CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Menu Models
class MenuNode(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    url: Optional[str] = None
    order: int = 0
    is_active: bool = True
    parent_id: Optional[str] = None
    # None means "not loaded", [] means "loaded, no children"
    children: Optional[List["MenuNode"]] = None
    depth: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    url: Optional[str] = Field(None, max_length=500)
    order: int = Field(0, ge=0)
    is_active: bool = True
    parent_id: Optional[str] = None


class MenuUpdate(CamelModel):
    """Partial update; only the keys present in the request are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    url: Optional[str] = Field(None, max_length=500)
    order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    parent_id: Optional[str] = None

    @field_validator("name", "order", "is_active")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class MenuMove(CamelModel):
    parent_id: Optional[str] = None


class MenuOrder(BaseModel):
    id: str
    order: int = Field(..., ge=0)


class MenuReorder(CamelModel):
    parent_id: Optional[str] = None
    orders: List[MenuOrder]


# Response Models
class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    store: str


# Update forward references
MenuNode.model_rebuild()
