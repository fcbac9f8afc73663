"""Team and SOP domain models."""

from pydantic import BaseModel, Field


class Team(BaseModel):
    """Team data transfer object."""

    id: str = Field(..., description="Unique team ID from database")
    name: str = Field(..., description="Team name")
    manager_id: str | None = Field(default=None, description="User ID of the team manager")


class Sop(BaseModel):
    """Standard Operating Procedure reference linked from task templates."""

    id: str = Field(..., description="Unique SOP ID from database")
    title: str = Field(..., description="SOP title")
    link: str = Field(..., description="Where the SOP document lives")
