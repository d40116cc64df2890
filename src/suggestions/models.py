"""Data models for AI-generated topic suggestions."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class Suggestion(BaseModel):
    """A topic suggested by the analysis service.

    Suggestions are regenerated on every call and carry no stable
    identifier; the title is the only thing that identifies them.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: Annotated[str, Field(min_length=1)]
    description: str = ""
    area: str = ""
    reason: str = ""
