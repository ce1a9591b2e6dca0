"""Learning-state records.

Attributes are snake_case; JSON (persisted and exported) uses the camelCase
names used by the web client, e.g. ``ease_factor`` <-> ``easeFactor``.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Set

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_serializer, model_validator
from pydantic.alias_generators import to_camel

DifficultyLevel = Literal['beginner', 'intermediate', 'advanced']
Rarity = Literal['common', 'rare', 'epic', 'legendary']
SessionType = Literal['review', 'new', 'mixed']

PASS_RATIO = 0.8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


# naive timestamps are taken to be UTC
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)


class ReviewItem(CamelModel):
    id: str
    # legacy exports used question/answer/interval
    prompt_text: str = Field(validation_alias=AliasChoices('promptText', 'prompt_text', 'question'), serialization_alias='promptText')
    answer_text: str = Field(validation_alias=AliasChoices('answerText', 'answer_text', 'answer'), serialization_alias='answerText')
    difficulty: int = Field(2, ge=1, le=5)
    next_review: UtcDatetime
    last_reviewed: UtcDatetime
    review_count: int = Field(0, ge=0)
    ease_factor: float = Field(2.5, ge=1.3)
    interval_days: int = Field(1, ge=1, validation_alias=AliasChoices('intervalDays', 'interval_days', 'interval'), serialization_alias='intervalDays')
    repetitions: int = Field(0, ge=0)
    topic: Optional[str] = None

    def is_due(self, now: datetime) -> bool:
        return self.next_review <= now


class StudySession(CamelModel):
    id: str
    start_time: UtcDatetime
    end_time: Optional[UtcDatetime] = None
    items_studied: List[str] = Field(default_factory=list)
    correct_count: int = Field(0, ge=0)
    total_count: int = Field(0, ge=0)
    session_type: SessionType = 'mixed'

    @property
    def accuracy(self) -> Optional[float]:
        if not self.total_count:
            return None
        return self.correct_count / self.total_count


class QuestionResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    question_index: int = Field(ge=0)
    is_correct: bool
    time_spent_seconds: float = Field(0, ge=0)
    attempts: int = Field(1, ge=0)


class QuizAttempt(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str = ''
    timestamp: UtcDatetime = Field(default_factory=utcnow)
    score: float = Field(ge=0)
    max_score: float = Field(gt=0)
    time_spent_seconds: float = Field(0, ge=0)
    answers: Dict[int, Any] = Field(default_factory=dict)
    question_results: List[QuestionResult] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_score_within_max(self):
        if self.score > self.max_score:
            raise ValueError('score cannot exceed max_score')
        return self

    @property
    def ratio(self) -> float:
        return self.score / self.max_score

    @property
    def is_pass(self) -> bool:
        return self.ratio >= PASS_RATIO

    @property
    def is_perfect(self) -> bool:
        return self.score == self.max_score


class TopicProgress(CamelModel):
    topic: str
    total_attempts: int = Field(0, ge=0)
    average_score: float = Field(0.0, ge=0.0, le=1.0)
    best_score: float = 0.0
    last_attempt_date: UtcDatetime = Field(default_factory=utcnow)
    streak_count: int = Field(0, ge=0)
    difficulty_level: DifficultyLevel = 'beginner'
    weak_areas: Set[str] = Field(default_factory=set)
    strong_areas: Set[str] = Field(default_factory=set)

    @field_serializer('weak_areas', 'strong_areas')
    def serialize_areas(self, areas: Set[str]) -> List[str]:
        return sorted(areas)


class UserStats(CamelModel):
    total_quizzes: int = 0
    total_questions: int = 0
    average_score: float = 0.0
    total_time_spent: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0


class Badge(CamelModel):
    id: str
    name: str
    description: str
    icon: str
    unlocked_at: UtcDatetime
    rarity: Rarity = 'common'


class Achievement(CamelModel):
    id: str
    name: str
    description: str
    progress: int = Field(0, ge=0)
    max_progress: int = Field(gt=0)
    is_completed: bool = False
    completed_at: Optional[UtcDatetime] = None

    @model_validator(mode='after')
    def check_progress_within_max(self):
        if self.progress > self.max_progress:
            raise ValueError('progress cannot exceed max_progress')
        return self


class Recommendation(CamelModel):
    type: Literal['review', 'practice', 'advance', 'focus']
    reason: str
    items: List[str] = Field(default_factory=list)
    priority: Literal['low', 'medium', 'high'] = 'medium'
