"""Strict schema baselines with forbidden extras by default."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Neutral strict base for response DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


def normalize_weekday_name(value: Any) -> Any:
    """Let request payloads spell weekdays in any case ("monday", "MONDAY")."""
    if isinstance(value, str):
        return value.strip().capitalize()
    return value
