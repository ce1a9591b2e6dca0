"""Badges and achievements awarded for quiz attempts."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from studycore.models import Achievement, Badge, QuizAttempt, Rarity, utcnow
from studycore.utils import KeyValueStore, get_logger, log_badge_unlock, log_state_reset

LOG = get_logger()

BADGES_KEY = 'adaptive_learning_badges'
ACHIEVEMENTS_KEY = 'adaptive_learning_achievements'

GENERIC_BADGE_ICON = '🏅'

BADGE_ICONS = {
    'perfect_score': '🏆',
    'quiz_master': '🎓',
    'streak_5': '🔥',
    'first_quiz': '🎯',
    'speed_demon': '⚡',
    'persistent': '💪',
}

BADGE_RARITIES: Dict[str, Rarity] = {
    'perfect_score': 'epic',
    'quiz_master': 'rare',
    'streak_5': 'rare',
    'first_quiz': 'common',
    'speed_demon': 'rare',
    'persistent': 'legendary',
}

# id -> (name, description)
BADGE_DEFINITIONS = {
    'perfect_score': ('Perfect Score', 'Got 100% on a quiz'),
    'quiz_master': ('Quiz Master', 'Scored 90%+ on a 10+ question quiz'),
    'streak_5': ('Hot Streak', 'Got 5 quizzes correct in a row'),
}

QUIZ_MASTER_MIN_QUESTIONS = 10
QUIZ_MASTER_RATIO = 0.9
STREAK_BADGE_LENGTH = 5


def default_achievements() -> List[Achievement]:
    return [
        Achievement(id='quiz_count', name='Quiz Enthusiast', description='Complete 10 quizzes', max_progress=10),
        Achievement(id='perfect_scores', name='Perfectionist', description='Get 5 perfect scores', max_progress=5),
    ]


def badge_icon(badge_id: str) -> str:
    return BADGE_ICONS.get(badge_id, GENERIC_BADGE_ICON)


def badge_rarity(badge_id: str) -> Rarity:
    return BADGE_RARITIES.get(badge_id, 'common')


@dataclass
class GamificationResult:
    unlocked_badges: List[Badge] = field(default_factory=list)
    # achievement id -> progress actually added
    achievement_deltas: Dict[str, int] = field(default_factory=dict)


class GamificationEngine:
    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock
        self._badges: List[Badge] = self._load_badges()
        self._achievements: List[Achievement] = self._load_achievements()

    def _load_badges(self) -> List[Badge]:
        raw = self._store.load(BADGES_KEY)
        if raw is None:
            return []
        try:
            if not isinstance(raw, list):
                raise ValueError('expected a list of badges')
            return [Badge.model_validate(b) for b in raw]
        except (PydanticValidationError, ValueError) as e:
            log_state_reset(BADGES_KEY, str(e))
            return []

    def _load_achievements(self) -> List[Achievement]:
        raw = self._store.load(ACHIEVEMENTS_KEY)
        if raw is None:
            return default_achievements()
        try:
            if not isinstance(raw, list):
                raise ValueError('expected a list of achievements')
            return [Achievement.model_validate(a) for a in raw]
        except (PydanticValidationError, ValueError) as e:
            log_state_reset(ACHIEVEMENTS_KEY, str(e))
            return default_achievements()

    def _save_badges(self) -> None:
        self._store.save(BADGES_KEY, [b.to_json_dict() for b in self._badges])

    def _save_achievements(self) -> None:
        self._store.save(ACHIEVEMENTS_KEY, [a.to_json_dict() for a in self._achievements])

    def evaluate(self, attempt: QuizAttempt, current_streak: int) -> GamificationResult:
        """Award badges and advance achievements for a recorded attempt.

        ``current_streak`` counts consecutive passing attempts including this one.
        """
        result = GamificationResult()
        candidates = []
        if attempt.is_perfect:
            candidates.append('perfect_score')
        if len(attempt.question_results) >= QUIZ_MASTER_MIN_QUESTIONS and attempt.ratio >= QUIZ_MASTER_RATIO:
            candidates.append('quiz_master')
        if current_streak >= STREAK_BADGE_LENGTH:
            candidates.append('streak_5')
        for badge_id in candidates:
            badge = self.unlock_badge(badge_id)
            if badge is not None:
                result.unlocked_badges.append(badge)

        for achievement_id, applies in (('quiz_count', True), ('perfect_scores', attempt.is_perfect)):
            if not applies:
                continue
            delta = self._advance(achievement_id)
            if delta:
                result.achievement_deltas[achievement_id] = delta
        self._save_achievements()
        return result

    def _advance(self, achievement_id: str, amount: int = 1) -> int:
        for idx, achievement in enumerate(self._achievements):
            if achievement.id != achievement_id:
                continue
            progress = min(achievement.progress + amount, achievement.max_progress)
            delta = progress - achievement.progress
            update = {'progress': progress}
            if progress >= achievement.max_progress and not achievement.is_completed:
                update.update(is_completed=True, completed_at=self._clock())
                LOG.info('achievement_completed', extra={'achievement_id': achievement_id})
            self._achievements[idx] = achievement.model_copy(update=update)
            return delta
        return 0

    def unlock_badge(self, badge_id: str, name: Optional[str] = None, description: Optional[str] = None) -> Optional[Badge]:
        """Unlock a badge once; returns None when it is already held."""
        if any(b.id == badge_id for b in self._badges):
            return None
        default_name, default_description = BADGE_DEFINITIONS.get(badge_id, (badge_id, ''))
        badge = Badge(
            id=badge_id,
            name=name or default_name,
            description=description if description is not None else default_description,
            icon=badge_icon(badge_id),
            unlocked_at=self._clock(),
            rarity=badge_rarity(badge_id),
        )
        self._badges.append(badge)
        self._save_badges()
        log_badge_unlock(badge_id, badge.rarity)
        return badge.model_copy(deep=True)

    def badges(self) -> List[Badge]:
        return [b.model_copy(deep=True) for b in self._badges]

    def achievements(self) -> List[Achievement]:
        return [a.model_copy(deep=True) for a in self._achievements]

    def reset(self) -> None:
        self._badges = []
        self._achievements = default_achievements()
        self._save_badges()
        self._save_achievements()
