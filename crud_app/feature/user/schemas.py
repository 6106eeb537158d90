from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserWrite(BaseModel):
    fullname: str = Field(..., description="Nom complet, sans espaces superflus")
    study_level: str = Field(..., description="Niveau d'études")
    age: int = Field(..., gt=0, le=150)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    fullname: str
    study_level: str
    age: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        # Stores without timezone support hand back naive UTC values.
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
