from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RaffleCreateRequest(CamelModel):
    name: str | None = None
    prize: str | None = None
    description: str | None = None
    allowed_domain: str | None = Field(default=None, alias="allowedDomain")
    timebox_minutes: int | None = Field(default=None, alias="timeboxMinutes", ge=0)
    require_confirmation: bool = Field(default=False, alias="requireConfirmation")


class RaffleUpdateRequest(CamelModel):
    status: str


class RegisterRequest(CamelModel):
    name: str | None = None
    email: str | None = None
    pin: str | None = None


class ConfirmPinRequest(CamelModel):
    pin: str | None = None


class TalkCreateRequest(CamelModel):
    title: str | None = None
    speaker: str | None = None
    description: str | None = None
    start_time: datetime | None = Field(default=None, alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
