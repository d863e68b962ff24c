"""Progress state models for the progression engine"""
from enum import Enum
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

ATTRIBUTE_MIN = 0
ATTRIBUTE_MAX = 100
INITIAL_ATTRIBUTE_VALUE = 60

CHECKIN_DOMAIN = "checkin"


class AttributeKey(str, Enum):
    """Core attributes"""
    INT = "int"  # intellect / research
    VIT = "vit"  # vitality / health
    MNG = "mng"  # management / planning
    CRE = "cre"  # creativity / inspiration


def clamp_attribute(value: int) -> int:
    """Clamp an attribute value into [ATTRIBUTE_MIN, ATTRIBUTE_MAX]"""
    return max(ATTRIBUTE_MIN, min(ATTRIBUTE_MAX, value))


def _default_attributes() -> dict[AttributeKey, int]:
    return {key: INITIAL_ATTRIBUTE_VALUE for key in AttributeKey}


def _empty_wallet() -> dict[AttributeKey, int]:
    return {key: 0 for key in AttributeKey}


class StreakCounter(BaseModel):
    """Consecutive-day completion counter for one domain"""
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    last_completion_date: Optional[date] = None


class Stats(BaseModel):
    """Lifetime activity counters"""
    total_quests_completed: int = Field(0, ge=0)
    total_focus_time: int = Field(0, ge=0)  # minutes
    total_check_ins: int = Field(0, ge=0)
    total_habit_completions: int = Field(0, ge=0)


class ProgressState(BaseModel):
    """
    A user's persistent progression record

    Mutated only by ProgressionEngine; everything else gets copies.
    """
    level: int = Field(1, ge=1)
    current_exp: int = Field(0, ge=0)
    max_exp: int = Field(150, gt=0)  # exp required for the next level
    currency: int = Field(0, ge=0)
    wallet: dict[AttributeKey, int] = Field(default_factory=_empty_wallet)
    attributes: dict[AttributeKey, int] = Field(default_factory=_default_attributes)
    stats: Stats = Field(default_factory=Stats)
    streaks: dict[str, StreakCounter] = Field(default_factory=dict)
    unlocked_entitlements: set[str] = Field(default_factory=set)

    @field_validator("attributes")
    @classmethod
    def clamp_attributes(cls, v: dict[AttributeKey, int]) -> dict[AttributeKey, int]:
        """Every attribute present and clamped to [0, 100]"""
        clamped = {key: INITIAL_ATTRIBUTE_VALUE for key in AttributeKey}
        for key, value in v.items():
            clamped[key] = clamp_attribute(value)
        return clamped

    @field_validator("wallet")
    @classmethod
    def fill_wallet(cls, v: dict[AttributeKey, int]) -> dict[AttributeKey, int]:
        """Every wallet slot present and non-negative"""
        wallet = _empty_wallet()
        for key, value in v.items():
            if value < 0:
                raise ValueError(f"wallet[{key.value}] must be >= 0")
            wallet[key] = value
        return wallet

    @model_validator(mode="after")
    def check_exp_below_threshold(self) -> "ProgressState":
        if self.current_exp >= self.max_exp:
            raise ValueError("current_exp must be below max_exp")
        return self

    @field_serializer("unlocked_entitlements")
    def serialize_entitlements(self, v: set[str]) -> list[str]:
        return sorted(v)
