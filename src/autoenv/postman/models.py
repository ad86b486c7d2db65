"""Wire models for the Postman environments API."""

from pydantic import BaseModel, ConfigDict


class EnvironmentValue(BaseModel):
    """One variable of a Postman environment.

    Fields we do not use (``type``, ``description``...) are kept so they
    survive a read-modify-write.
    """

    model_config = ConfigDict(extra="allow")

    key: str
    value: str | int | float | bool | None = ""
    enabled: bool = True


class EnvironmentSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class Environment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    values: list[EnvironmentValue] = []
