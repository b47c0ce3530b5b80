"""User domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator


class UserResponse(BaseModel):
    id: str
    email: str
    displayName: str
    timezone: str

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Fields a user may change on their own profile"""

    displayName: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("displayName")
    @classmethod
    def validate_display_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Display name cannot be blank")
        if len(v) > 100:
            raise ValueError("Display name cannot exceed 100 characters")
        return v
