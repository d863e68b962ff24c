"""Reward bundle and activity result models"""
from typing import Optional
from pydantic import BaseModel, Field

from src.models.progress import AttributeKey, StreakCounter


class StatsDelta(BaseModel):
    """Counter increments carried by a bundle"""
    quests_completed: int = Field(0, ge=0)
    focus_minutes: int = Field(0, ge=0)
    check_ins: int = Field(0, ge=0)
    habit_completions: int = Field(0, ge=0)


class RewardBundle(BaseModel):
    """
    Deltas produced by resolving one activity

    Ephemeral: applied to a ProgressState as a unit, never persisted on its own.
    categorized_currency and attribute_deltas are always present (possibly empty).
    """
    exp: int = Field(0, ge=0)
    currency: int = Field(0, ge=0)
    categorized_currency: dict[AttributeKey, int] = Field(default_factory=dict)
    attribute_deltas: dict[AttributeKey, int] = Field(default_factory=dict)
    bonus_message: Optional[str] = None
    is_special: bool = False
    streak_updates: dict[str, StreakCounter] = Field(default_factory=dict)
    stats_delta: StatsDelta = Field(default_factory=StatsDelta)
    multiplier: float = 1.0  # applied to the raw exp

    @property
    def is_empty(self) -> bool:
        return (
            self.exp == 0
            and self.currency == 0
            and not any(self.categorized_currency.values())
            and not any(self.attribute_deltas.values())
            and not self.streak_updates
            and self.stats_delta == StatsDelta()
        )


class LevelRewards(BaseModel):
    """Rewards granted on reaching a level"""
    coins: int = 0
    unlocks: list[str] = Field(default_factory=list)


class LevelUpEvent(BaseModel):
    """Notification payload for one level gained"""
    level: int
    title: str
    rewards: LevelRewards = Field(default_factory=LevelRewards)


class ActivityResult(BaseModel):
    """Outcome of submitting one activity"""
    bundle: RewardBundle = Field(default_factory=RewardBundle)
    leveled_up: bool = False
    new_level: Optional[int] = None
    level_ups: list[LevelUpEvent] = Field(default_factory=list)
    newly_unlocked: list[str] = Field(default_factory=list)
    affordable: list[str] = Field(default_factory=list)  # coin-gated, not yet bought
    applied: bool = True
    persisted: Optional[bool] = None  # None until a store has been asked
    message: Optional[str] = None
