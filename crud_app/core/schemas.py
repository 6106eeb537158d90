from typing import Any

from pydantic import BaseModel


class ApiResponse(BaseModel):
    """Uniform envelope of the CRUD routes. Unset keys are left out of the body."""

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None
    count: int | None = None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
