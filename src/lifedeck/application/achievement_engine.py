"""
Achievement engine: unlocks catalog achievements from accumulated life points.

Unlocking is one-way: once an achievement is unlocked it never reverts and
its timestamp is never rewritten.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from lifedeck.domain.models import Achievement, LifeDomain, UserProfile

logger = logging.getLogger(__name__)

# (id, title, description, points_required, category)
ACHIEVEMENT_CATALOG: tuple[tuple[str, str, str, int, LifeDomain | None], ...] = (
    ("first_steps", "First Steps", "Complete your first coaching card", 10, None),
    ("week_strong", "Week Strong", "Maintain a 7-day streak", 70, None),
    ("health_hero", "Health Hero", "Complete 20 health cards", 200, LifeDomain.HEALTH),
    ("money_master", "Money Master", "Complete 20 finance cards", 200, LifeDomain.FINANCE),
    (
        "productivity_pro",
        "Productivity Pro",
        "Complete 20 productivity cards",
        200,
        LifeDomain.PRODUCTIVITY,
    ),
    (
        "mindful_maven",
        "Mindful Maven",
        "Complete 20 mindfulness cards",
        200,
        LifeDomain.MINDFULNESS,
    ),
    ("century_club", "Century Club", "Complete 100 coaching cards", 1000, None),
)


def default_achievements() -> list[Achievement]:
    """Fresh, all-locked copy of the fixed catalog."""
    return [
        Achievement(
            id=aid,
            title=title,
            description=description,
            points_required=required,
            category=category,
        )
        for aid, title, description, required, category in ACHIEVEMENT_CATALOG
    ]


@dataclass
class AchievementProgress:
    achievement_id: str
    title: str
    points_required: int
    fraction: float  # 0.0-1.0


class AchievementEngine:
    """Evaluates the achievement catalog against a profile."""

    def check(self, profile: UserProfile, now: datetime) -> list[Achievement]:
        """
        Unlock every locked achievement whose threshold has been reached.

        Returns:
            Achievements unlocked by this call (empty when nothing changed).
        """
        self._sync_catalog(profile)

        unlocked: list[Achievement] = []
        for achievement in profile.achievements:
            if achievement.is_unlocked:
                continue
            if profile.life_points >= achievement.points_required:
                achievement.is_unlocked = True
                achievement.unlocked_at = now
                unlocked.append(achievement)
                logger.info(f"Achievement unlocked: {achievement.title}")

        return unlocked

    def progress(self, profile: UserProfile) -> list[AchievementProgress]:
        """Fraction of the way towards each locked achievement."""
        result = []
        for achievement in profile.achievements:
            if achievement.is_unlocked:
                continue
            required = achievement.points_required
            fraction = 1.0 if required <= 0 else min(1.0, profile.life_points / required)
            result.append(
                AchievementProgress(
                    achievement_id=achievement.id,
                    title=achievement.title,
                    points_required=required,
                    fraction=fraction,
                )
            )
        return result

    def _sync_catalog(self, profile: UserProfile) -> None:
        """Add catalog entries missing from an older profile; never touches existing ones."""
        known = {a.id for a in profile.achievements}
        for achievement in default_achievements():
            if achievement.id not in known:
                profile.achievements.append(achievement)
