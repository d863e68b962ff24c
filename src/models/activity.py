"""Activity event models (the inputs of the progression engine)"""
from enum import Enum
from datetime import date
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from src.models.progress import AttributeKey, CHECKIN_DOMAIN


class QuestType(str, Enum):
    """Quest types"""
    MAIN = "main"
    SIDE = "side"
    DAILY = "daily"


class QuestPriority(str, Enum):
    """Quest priorities"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class FocusMode(str, Enum):
    """Pomodoro session modes"""
    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


class QuestCompletion(BaseModel):
    """A quest marked complete"""
    type: Literal["quest"] = "quest"
    quest_id: str = Field(min_length=1)
    quest_type: QuestType = QuestType.MAIN
    priority: QuestPriority = QuestPriority.MEDIUM
    attributes: list[AttributeKey] = Field(default_factory=list)
    # Explicit rewards set on the quest; None falls back to the catalog
    exp_reward: Optional[int] = Field(None, ge=0)
    coin_reward: Optional[int] = Field(None, ge=0)
    title: str = ""

    @field_validator("attributes")
    @classmethod
    def dedupe_attributes(cls, v: list[AttributeKey]) -> list[AttributeKey]:
        """Keep first occurrence order, drop repeats"""
        return list(dict.fromkeys(v))


class HabitCompletion(BaseModel):
    """A habit logged for a day"""
    type: Literal["habit"] = "habit"
    habit_id: str = Field(min_length=1)
    completion_date: date = Field(default_factory=date.today)

    @field_validator("habit_id")
    @classmethod
    def reserved_domain(cls, v: str) -> str:
        if v == CHECKIN_DOMAIN:
            raise ValueError(f"'{CHECKIN_DOMAIN}' is reserved for daily check-ins")
        return v


class CheckIn(BaseModel):
    """Daily check-in"""
    type: Literal["checkin"] = "checkin"
    checkin_date: date = Field(default_factory=date.today)


class FocusSession(BaseModel):
    """A finished pomodoro session"""
    type: Literal["focus"] = "focus"
    minutes: int = Field(ge=0, le=24 * 60)
    completed: bool = True
    mode: FocusMode = FocusMode.WORK


Activity = Annotated[
    Union[QuestCompletion, HabitCompletion, CheckIn, FocusSession],
    Field(discriminator="type"),
]
