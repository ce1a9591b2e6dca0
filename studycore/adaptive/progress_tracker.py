"""Per-topic rolling statistics and quiz attempt history."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from studycore.errors import NotFoundError
from studycore.models import DifficultyLevel, QuizAttempt, TopicProgress, UserStats, utcnow
from studycore.utils import KeyValueStore, get_logger, log_attempt, log_state_reset

from .classifier import KeywordTopicClassifier, TopicClassifier

LOG = get_logger()

PROGRESS_KEY = 'adaptive_learning_progress'
ATTEMPTS_KEY = 'adaptive_learning_attempts'
USER_STATS_KEY = 'adaptive_learning_user_stats'

# weight of the newest attempt in the rolling average
EMA_ALPHA = 0.3
WEAK_AREA_THRESHOLD = 0.6
STRONG_AREA_THRESHOLD = 0.8


class TopicNotFoundError(NotFoundError):
    pass


@dataclass
class AttemptRecord:
    attempt: QuizAttempt
    progress: Dict[str, TopicProgress] = field(default_factory=dict)


def difficulty_for(progress: TopicProgress) -> DifficultyLevel:
    if progress.total_attempts < 3:
        return 'beginner'
    if progress.average_score < 0.6:
        return 'beginner'
    if progress.average_score < 0.8:
        return 'intermediate'
    return 'advanced'


def _question_text(question: Any) -> str:
    if isinstance(question, str):
        return question
    return getattr(question, 'question', '') or ''


class ProgressTracker:
    def __init__(self, store: KeyValueStore, classifier: Optional[TopicClassifier] = None,
                 clock: Callable[[], datetime] = utcnow, attempt_limit: int = 100):
        self._store = store
        self.classifier = classifier or KeywordTopicClassifier()
        self._clock = clock
        self.attempt_limit = attempt_limit
        self._progress: Dict[str, TopicProgress] = self._load_progress()
        self._attempts: List[QuizAttempt] = self._load_attempts()
        self._user_stats: UserStats = self._load_user_stats()

    def _load_progress(self) -> Dict[str, TopicProgress]:
        raw = self._store.load(PROGRESS_KEY)
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            log_state_reset(PROGRESS_KEY, 'expected an object of topic progress')
            return {}
        try:
            records = [TopicProgress.model_validate(v) for v in raw.values()]
        except PydanticValidationError as e:
            log_state_reset(PROGRESS_KEY, str(e))
            return {}
        return {p.topic: p for p in records}

    def _load_attempts(self) -> List[QuizAttempt]:
        raw = self._store.load(ATTEMPTS_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            log_state_reset(ATTEMPTS_KEY, 'expected a list of attempts')
            return []
        try:
            return [QuizAttempt.model_validate(a) for a in raw][:self.attempt_limit]
        except PydanticValidationError as e:
            log_state_reset(ATTEMPTS_KEY, str(e))
            return []

    def _load_user_stats(self) -> UserStats:
        raw = self._store.load(USER_STATS_KEY)
        if raw is None:
            return UserStats()
        try:
            return UserStats.model_validate(raw)
        except PydanticValidationError as e:
            log_state_reset(USER_STATS_KEY, str(e))
            return UserStats()

    def _save(self) -> None:
        self._attempts = self._attempts[:self.attempt_limit]
        self._store.save(PROGRESS_KEY, {k: v.to_json_dict() for k, v in self._progress.items()})
        self._store.save(ATTEMPTS_KEY, [a.to_json_dict() for a in self._attempts])
        self._store.save(USER_STATS_KEY, self._user_stats.to_json_dict())

    def _area_accuracy(self, attempt: QuizAttempt, questions: Optional[Sequence[Any]]) -> Dict[str, float]:
        if not questions:
            return {}
        tally: Dict[str, List[int]] = {}
        for result in attempt.question_results:
            if result.question_index >= len(questions):
                continue
            for area in self.classifier.classify(_question_text(questions[result.question_index])):
                counts = tally.setdefault(area, [0, 0])
                counts[0] += 1 if result.is_correct else 0
                counts[1] += 1
        return {area: correct / total for area, (correct, total) in tally.items()}

    def record_attempt(self, attempt: QuizAttempt, topics: Optional[Sequence[str]] = None,
                       questions: Optional[Sequence[Any]] = None) -> AttemptRecord:
        """Store an attempt and fold it into the progress of every topic it touched.

        ``questions`` (texts or question models, indexed like
        ``QuestionResult.question_index``) enable weak/strong area detection.
        """
        if not attempt.id:
            attempt = attempt.model_copy(update={'id': f'attempt_{uuid.uuid4().hex}'})
        now = self._clock()
        ratio = attempt.ratio
        touched = list(dict.fromkeys(topics)) if topics is not None else self.classifier.topics_for_attempt(attempt)
        areas = self._area_accuracy(attempt, questions)

        updated: Dict[str, TopicProgress] = {}
        for topic in touched:
            current = self._progress.get(topic) or TopicProgress(topic=topic, last_attempt_date=now)
            weak, strong = set(current.weak_areas), set(current.strong_areas)
            for area, accuracy in areas.items():
                if accuracy < WEAK_AREA_THRESHOLD:
                    weak.add(area)
                    strong.discard(area)
                elif accuracy >= STRONG_AREA_THRESHOLD:
                    strong.add(area)
                    weak.discard(area)
            progress = current.model_copy(update={
                'total_attempts': current.total_attempts + 1,
                'average_score': current.average_score * (1 - EMA_ALPHA) + ratio * EMA_ALPHA,
                'best_score': max(current.best_score, attempt.score),
                'streak_count': current.streak_count + 1 if attempt.is_pass else 0,
                'last_attempt_date': now,
                'weak_areas': weak,
                'strong_areas': strong,
            })
            progress.difficulty_level = difficulty_for(progress)
            self._progress[topic] = progress
            updated[topic] = progress.model_copy(deep=True)

        self._attempts.insert(0, attempt)
        self._update_user_stats(attempt)
        self._save()
        log_attempt(attempt.id, touched, attempt.score, attempt.max_score, len(attempt.question_results))
        return AttemptRecord(attempt=attempt.model_copy(deep=True), progress=updated)

    def _update_user_stats(self, attempt: QuizAttempt) -> None:
        stats = self._user_stats
        total = stats.total_quizzes + 1
        streak = self.current_streak()
        self._user_stats = stats.model_copy(update={
            'total_quizzes': total,
            'total_questions': stats.total_questions + len(attempt.question_results),
            'average_score': (stats.average_score * stats.total_quizzes + attempt.ratio) / total,
            'total_time_spent': stats.total_time_spent + attempt.time_spent_seconds,
            'current_streak': streak,
            'longest_streak': max(stats.longest_streak, streak),
        })

    def get_progress(self, topic: str) -> TopicProgress:
        progress = self._progress.get(topic)
        if progress is None:
            return TopicProgress(topic=topic, last_attempt_date=self._clock())
        return progress.model_copy(deep=True)

    def has_topic(self, topic: str) -> bool:
        return topic in self._progress

    def all_progress(self) -> Dict[str, TopicProgress]:
        return {k: v.model_copy(deep=True) for k, v in self._progress.items()}

    def remove_topic(self, topic: str) -> None:
        if self._progress.pop(topic, None) is None:
            raise TopicNotFoundError(f'Unknown topic: {topic}')
        self._save()

    def recent_attempts(self, count: int = 10) -> List[QuizAttempt]:
        return [a.model_copy(deep=True) for a in self._attempts[:max(0, count)]]

    def current_streak(self) -> int:
        """Consecutive passing attempts, newest first."""
        streak = 0
        for attempt in self._attempts:
            if not attempt.is_pass:
                break
            streak += 1
        return streak

    def user_stats(self) -> UserStats:
        return self._user_stats.model_copy(deep=True)

    def reset(self) -> None:
        self._progress = {}
        self._attempts = []
        self._user_stats = UserStats()
        self._save()
        LOG.info('progress_reset')
