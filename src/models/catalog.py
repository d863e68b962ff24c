"""Static catalog models (levels, entitlements, quest reward tables)"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.models.activity import QuestPriority, QuestType
from src.models.progress import AttributeKey


class UnlockType(str, Enum):
    """Entitlement unlock predicate types"""
    DEFAULT = "default"
    LEVEL = "level"
    ACHIEVEMENT = "achievement"  # total quests completed
    COINS = "coins"  # spend-gate


class LevelDefinition(BaseModel):
    """One row of the level table"""
    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1)
    title: str
    exp_required: int = Field(0, ge=0)
    coins: int = Field(0, ge=0)
    reward_description: str = ""
    unlocks: tuple[str, ...] = ()


class UnlockCondition(BaseModel):
    """Predicate deciding whether an entitlement is unlocked"""
    model_config = ConfigDict(frozen=True)

    type: UnlockType = UnlockType.DEFAULT
    value: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def value_required(self) -> "UnlockCondition":
        if self.type != UnlockType.DEFAULT and self.value is None:
            raise ValueError(f"unlock condition '{self.type.value}' needs a value")
        return self


class EntitlementDefinition(BaseModel):
    """An unlockable cosmetic, achievement or feature gate"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    unlock_condition: UnlockCondition = Field(default_factory=UnlockCondition)


class QuestBaseReward(BaseModel):
    """Catalog reward for a quest type before priority weighting"""
    model_config = ConfigDict(frozen=True)

    exp: int = Field(ge=0)
    coins: int = Field(ge=0)
    attribute: AttributeKey


class HabitBaseReward(BaseModel):
    """Reward for one habit completion before the streak multiplier"""
    model_config = ConfigDict(frozen=True)

    exp: int = Field(10, ge=0)
    coins: int = Field(5, ge=0)


class Catalog(BaseModel):
    """Immutable configuration loaded at startup"""
    model_config = ConfigDict(frozen=True)

    levels: tuple[LevelDefinition, ...]
    entitlements: tuple[EntitlementDefinition, ...]
    quest_rewards: dict[QuestType, QuestBaseReward]
    priority_weights: dict[QuestPriority, float]
    habit_reward: HabitBaseReward = Field(default_factory=HabitBaseReward)
    quest_attribute_gain: int = Field(10, ge=0)
    quest_attribute_coin_share: float = Field(0.7, ge=0, le=1)
    default_level_coins: int = Field(10, ge=0)
    default_title: str = "Novice Adventurer"

    @field_validator("levels")
    @classmethod
    def sort_levels(cls, v: tuple[LevelDefinition, ...]) -> tuple[LevelDefinition, ...]:
        """Floor-match lookups need ascending, unique levels"""
        ordered = tuple(sorted(v, key=lambda d: d.level))
        seen = [d.level for d in ordered]
        if len(seen) != len(set(seen)):
            raise ValueError("level definitions must have unique levels")
        return ordered

    @field_validator("entitlements")
    @classmethod
    def unique_entitlements(cls, v: tuple[EntitlementDefinition, ...]) -> tuple[EntitlementDefinition, ...]:
        ids = [e.id for e in v]
        if len(ids) != len(set(ids)):
            raise ValueError("entitlement ids must be unique")
        return v

    @model_validator(mode="after")
    def complete_tables(self) -> "Catalog":
        missing_types = [t.value for t in QuestType if t not in self.quest_rewards]
        if missing_types:
            raise ValueError(f"quest_rewards missing types: {missing_types}")
        missing_priorities = [p.value for p in QuestPriority if p not in self.priority_weights]
        if missing_priorities:
            raise ValueError(f"priority_weights missing priorities: {missing_priorities}")
        return self

    def get_entitlement(self, entitlement_id: str) -> Optional[EntitlementDefinition]:
        for definition in self.entitlements:
            if definition.id == entitlement_id:
                return definition
        return None
