"""Learning-state engine.

``LearningEngine`` wires the review scheduler, progress tracker and
gamification engine to one durable store, and exposes generation through a
cached ``GenerationService``. Every dependency is injected, so several
engines can coexist in one process.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from studycore import config
from studycore.adaptive import (
    KeywordTopicClassifier,
    ProgressTracker,
    TopicClassifier,
    generate_recommendations,
    select_questions,
)
from studycore.flashcards import ReviewScheduler
from studycore.gamification import GamificationEngine
from studycore.models import (
    Achievement,
    Badge,
    DifficultyLevel,
    QuizAttempt,
    Recommendation,
    ReviewItem,
    TopicProgress,
    UserStats,
    utcnow,
)
from studycore.semantic import GenerationProvider, GenerationService, OpenAIProvider, ResponseCache
from studycore.utils import KeyValueStore, create_store, get_logger

LOG = get_logger()


@dataclass
class AttemptOutcome:
    attempt_id: str
    progress: Dict[str, TopicProgress] = field(default_factory=dict)
    unlocked_badges: List[Badge] = field(default_factory=list)
    achievement_deltas: Dict[str, int] = field(default_factory=dict)


class LearningEngine:
    def __init__(self, store: Optional[KeyValueStore] = None, provider: Optional[GenerationProvider] = None,
                 settings: Optional[config.Settings] = None, classifier: Optional[TopicClassifier] = None,
                 clock: Optional[Callable[[], datetime]] = None, cache: Optional[ResponseCache] = None):
        self.settings = settings or config.get_settings()
        self.store = store if store is not None else create_store(self.settings)
        self.clock = clock or utcnow
        self.reviews = ReviewScheduler(self.store, clock=self.clock, session_limit=self.settings.SESSION_HISTORY_LIMIT)
        self.progress = ProgressTracker(
            self.store,
            classifier=classifier or KeywordTopicClassifier(),
            clock=self.clock,
            attempt_limit=self.settings.ATTEMPT_HISTORY_LIMIT,
        )
        self.gamification = GamificationEngine(self.store, clock=self.clock)
        self._provider = provider
        self._cache = cache
        self._generation: Optional[GenerationService] = None
        LOG.info('LearningEngine initialized', extra={'store': type(self.store).__name__})

    @property
    def generation(self) -> GenerationService:
        """Cached generation calls; the OpenAI provider is built on first use."""
        if self._generation is None:
            provider = self._provider or OpenAIProvider(self.settings)
            cache = self._cache if self._cache is not None else ResponseCache(max_entries=self.settings.CACHE_MAX_ENTRIES)
            self._generation = GenerationService(provider, cache, self.settings)
        return self._generation

    # reviews

    def admit_questions(self, questions: Sequence[Any], topic: str) -> List[ReviewItem]:
        return self.reviews.add_questions(questions, topic)

    def schedule_review(self, item_id: str, quality: int) -> ReviewItem:
        return self.reviews.schedule(item_id, quality)

    def due_reviews(self, count: int = 20) -> List[ReviewItem]:
        return self.reviews.due_items(count)

    def export_data(self) -> str:
        return self.reviews.export_data()

    def import_data(self, json_data: str) -> Dict[str, int]:
        return self.reviews.import_data(json_data)

    # attempts and progress

    def record_attempt(self, attempt: QuizAttempt, topics: Optional[Sequence[str]] = None,
                       questions: Optional[Sequence[Any]] = None) -> AttemptOutcome:
        record = self.progress.record_attempt(attempt, topics=topics, questions=questions)
        awarded = self.gamification.evaluate(record.attempt, self.progress.current_streak())
        return AttemptOutcome(
            attempt_id=record.attempt.id,
            progress=record.progress,
            unlocked_badges=awarded.unlocked_badges,
            achievement_deltas=awarded.achievement_deltas,
        )

    def topic_progress(self, topic: str) -> TopicProgress:
        return self.progress.get_progress(topic)

    def user_stats(self) -> UserStats:
        return self.progress.user_stats()

    def badges(self) -> List[Badge]:
        return self.gamification.badges()

    def achievements(self) -> List[Achievement]:
        return self.gamification.achievements()

    def select_questions(self, pool: Sequence[Any], topic: str, target_level: Optional[DifficultyLevel] = None,
                         count: int = 10) -> List[Any]:
        progress = self.progress.get_progress(topic) if self.progress.has_topic(topic) else None
        level = target_level or (progress.difficulty_level if progress is not None else 'beginner')
        return select_questions(pool, progress, level, count)

    def recommendations(self) -> List[Recommendation]:
        return generate_recommendations(self.progress.all_progress().values())

    def reset_progress(self, include_reviews: bool = False) -> None:
        self.progress.reset()
        self.gamification.reset()
        if include_reviews:
            self.reviews.reset()
        LOG.info('engine_reset', extra={'include_reviews': include_reviews})
