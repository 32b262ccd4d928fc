"""
Curriculum schemas for EduLedger.

Defines Pydantic models for the curriculum catalog including:
- Levels with access-duration cost and required session count
- Promotion policy (minimum completion rate, admin approval)
- Curriculum with contiguous level ordering

Policy defaults live here as named constants. An unset catalog value
resolves to its constant through the model properties below and nowhere else.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional

# -----------------------------------------------------------------------------
# Policy constants
# -----------------------------------------------------------------------------

DEFAULT_MINIMUM_COMPLETION_RATE = 80.0
DEFAULT_LEVEL_DURATION_DAYS = 30
DEFAULT_SESSIONS_COUNT = 12
DEFAULT_MIN_GROUP_SIZE = 6
DEFAULT_MAX_GROUP_SIZE = 20
EXPIRING_SOON_DAYS = 7


# -----------------------------------------------------------------------------
# Levels
# -----------------------------------------------------------------------------


class Level(BaseModel):
    """One stage of a curriculum."""
    order: int = Field(..., ge=1)
    title: Optional[str] = None
    duration_days: Optional[int] = Field(default=None, ge=1)  # cost of promotion INTO this level
    sessions_count: int = Field(default=DEFAULT_SESSIONS_COUNT, ge=0)  # attended sessions required

    @property
    def effective_duration_days(self) -> int:
        if self.duration_days is None:
            return DEFAULT_LEVEL_DURATION_DAYS
        return self.duration_days


class ProgressSettings(BaseModel):
    minimum_completion_rate: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    require_admin_approval: bool = True


# -----------------------------------------------------------------------------
# Curriculum
# -----------------------------------------------------------------------------


class Curriculum(BaseModel):
    """
    Immutable-per-version definition of a curriculum.

    Level orders must be the contiguous integers 1..len(levels); the list is
    kept sorted by order so that levels[i].order == i + 1.
    """
    id: str
    title: str = ""
    levels: list[Level]
    progress_settings: ProgressSettings = Field(default_factory=ProgressSettings)
    min_group_size: int = Field(default=DEFAULT_MIN_GROUP_SIZE, ge=0)
    max_group_size: int = Field(default=DEFAULT_MAX_GROUP_SIZE, ge=1)
    is_active: bool = True

    @model_validator(mode='after')
    def levels_contiguous(self):
        self.levels.sort(key=lambda level: level.order)
        orders = [level.order for level in self.levels]
        if orders != list(range(1, len(orders) + 1)):
            raise ValueError(f'Level orders must be contiguous from 1, got {orders}')
        if self.min_group_size >= self.max_group_size:
            raise ValueError('min_group_size must be less than max_group_size')
        return self

    @property
    def total_levels(self) -> int:
        return len(self.levels)

    @property
    def final_level(self) -> int:
        return len(self.levels)

    @property
    def minimum_completion_rate(self) -> float:
        """Minimum current-level completion (percent) required for promotion."""
        rate = self.progress_settings.minimum_completion_rate
        if rate is None:
            return DEFAULT_MINIMUM_COMPLETION_RATE
        return rate

    def get_level(self, order: int) -> Optional[Level]:
        """Return the level with the given order, or None if absent."""
        if 1 <= order <= len(self.levels):
            return self.levels[order - 1]
        return None

    def level_duration(self, order: int) -> int:
        """Access-credit cost (days) of being promoted into level `order`."""
        level = self.get_level(order)
        if level is None:
            return DEFAULT_LEVEL_DURATION_DAYS
        return level.effective_duration_days
