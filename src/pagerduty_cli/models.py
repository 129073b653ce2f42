"""Pydantic models for PagerDuty payloads and assembled escalation policies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ── Assembled records ──────────────────────────────────────────────────────


class Person(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str = ""
    id: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_display_name(cls, data: object) -> object:
        # A bare string is shorthand for a person known only by name.
        if isinstance(data, str):
            return {"name": data}
        return data


class EscalationLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(gt=0)
    people: list[Person] = Field(default_factory=list)


class EscalationPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    id: str
    levels: list[EscalationLevel] = Field(default_factory=list)
    description: str | None = None
    services: list[str] = Field(default_factory=list)


# ── Upstream API v2 payloads ───────────────────────────────────────────────


class ModelReference(BaseModel):
    id: str


class UserModel(BaseModel):
    id: str
    name: str
    email: str = ""


class ServiceModel(BaseModel):
    id: str
    name: str
    escalation_policy: ModelReference


class EscalationPolicyModel(BaseModel):
    id: str
    name: str
    description: str | None = None


class OnCallModel(BaseModel):
    escalation_policy: ModelReference
    escalation_level: int = Field(gt=0)
    user: ModelReference
