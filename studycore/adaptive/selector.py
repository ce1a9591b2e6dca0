"""Adaptive question selection.

Candidates are filtered by the difficulty they present to this learner, then
questions touching the learner's weak areas fill 70% of the selection.
"""
import math
from typing import Any, List, Optional, Sequence

from studycore.models import DifficultyLevel, TopicProgress

WEAK_SHARE = 0.7

_NEXT_LEVEL = {
    'beginner': 'intermediate',
    'intermediate': 'advanced',
    'advanced': 'advanced',
}

# effective difficulty per question type for learners who are struggling / excelling
_STRUGGLING = {
    'multiple-choice': 'beginner',
    'true-false': 'beginner',
    'written': 'intermediate',
    'matching': 'intermediate',
    'ordering': 'advanced',
    'drag-drop': 'advanced',
}
_EXCELLING = {
    'multiple-choice': 'intermediate',
    'true-false': 'intermediate',
}


def next_level(level: DifficultyLevel) -> DifficultyLevel:
    return _NEXT_LEVEL.get(level, 'intermediate')


def effective_difficulty(question_type: str, progress: Optional[TopicProgress]) -> DifficultyLevel:
    if progress is None:
        return 'intermediate'
    if progress.average_score < 0.6 and progress.total_attempts > 3:
        return _STRUGGLING.get(question_type, 'intermediate')
    if progress.average_score > 0.8 and progress.total_attempts > 5:
        return _EXCELLING.get(question_type, 'advanced')
    return 'intermediate'


def _content_key(question: Any) -> str:
    if hasattr(question, 'model_dump_json'):
        return question.model_dump_json()
    return repr(question)


def _matches_weak_area(question: Any, weak_areas: Sequence[str]) -> bool:
    text = (getattr(question, 'question', '') or '').lower()
    return any(area.lower() in text for area in weak_areas if area)


def select_questions(pool: Sequence[Any], progress: Optional[TopicProgress], target_level: DifficultyLevel, count: int) -> List[Any]:
    if count <= 0:
        return []

    allowed = {target_level, next_level(target_level)}
    candidates, seen = [], set()
    for question in pool:
        key = _content_key(question)
        if key in seen:
            continue
        seen.add(key)
        if effective_difficulty(question.type, progress) in allowed:
            candidates.append(question)

    weak_areas = sorted(progress.weak_areas) if progress is not None else []
    weak = [q for q in candidates if _matches_weak_area(q, weak_areas)]
    other = [q for q in candidates if not _matches_weak_area(q, weak_areas)]

    weak_count = math.floor(count * WEAK_SHARE)
    selected = weak[:weak_count] + other[:count - weak_count]
    if len(selected) < count:
        chosen = {id(q) for q in selected}
        selected.extend([q for q in candidates if id(q) not in chosen][:count - len(selected)])
    return selected[:count]
