"""Achievement models for gamification"""
from pydantic import BaseModel

from personalfit.models.gamification import AchievementCategory, AchievementStats


class AchievementCriteria(BaseModel):
    """Unlock rule: a stats field must reach a minimum value"""
    stat: str
    minimum: int = 1

    def is_met(self, stats: AchievementStats) -> bool:
        value = getattr(stats, self.stat)
        # bool is an int subclass, so profile_complete=True meets minimum 1
        return int(value) >= self.minimum


class Achievement(BaseModel):
    """Achievement definition"""
    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    criteria: AchievementCriteria


class AchievementView(BaseModel):
    """Catalog entry as shown to a user"""
    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    unlocked: bool = False
