"""Review scheduling with the SM-2 spaced-repetition algorithm.

``sm2_update`` is the pure algorithm; ``ReviewScheduler`` owns the review
items and study sessions, persists them in a ``KeyValueStore`` and hands
callers copies only.
"""
from __future__ import annotations

import json
import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from studycore.errors import NotFoundError, SerializationError, ValidationError
from studycore.models import ReviewItem, SessionType, StudySession, utcnow
from studycore.utils import KeyValueStore, get_logger, log_review, log_state_reset

LOG = get_logger()

ITEMS_KEY = 'srs_items'
SESSIONS_KEY = 'srs_study_sessions'

MIN_EASE_FACTOR = 1.3
GRADUATING_INTERVAL = 6
DEFAULT_EASE_FACTOR = 2.5

# review difficulty (1..5) per question type
TYPE_DIFFICULTY = {
    'true-false': 1,
    'multiple-choice': 2,
    'matching': 3,
    'drag-drop': 3,
    'written': 4,
    'ordering': 4,
}


class ReviewNotFoundError(NotFoundError):
    pass


class ReviewValidationError(ValidationError):
    pass


class ReviewImportError(SerializationError):
    pass


class SM2Result(NamedTuple):
    interval_days: int
    repetitions: int
    ease_factor: float


def check_quality(quality: Any) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
        raise ReviewValidationError(f'quality must be an integer between 0 and 5, got {quality!r}')
    return quality


def sm2_update(quality: int, repetitions: int, ease_factor: float, interval_days: int) -> SM2Result:
    """One SM-2 step.

    A second correct recall graduates the item to a six-day interval unless it
    already carries a longer one; from then on the interval grows by the ease
    factor *before* this step's adjustment. The ease factor is adjusted on
    every call, correct or not, and never drops below 1.3.
    """
    quality = check_quality(quality)
    if quality < 3:
        interval, reps = 1, 0
    else:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1 and interval_days < GRADUATING_INTERVAL:
            interval = GRADUATING_INTERVAL
        else:
            interval = int(math.floor(interval_days * ease_factor + 0.5))
        reps = repetitions + 1
    miss = 5 - quality
    ef = max(MIN_EASE_FACTOR, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))
    return SM2Result(interval_days=max(1, interval), repetitions=reps, ease_factor=ef)


def answer_text_for(question) -> str:
    qtype = question.type
    if qtype == 'multiple-choice':
        return question.options[question.correct_answer_index]
    if qtype == 'true-false':
        return 'True' if question.correct_answer else 'False'
    if qtype == 'written':
        return 'Written answer question'
    if qtype == 'matching':
        return ', '.join(
            f'{question.left_items[left]} → {question.right_items[right]}'
            for left, right in question.correct_pairs.items()
        )
    if qtype == 'ordering':
        return ' → '.join(question.items[i] for i in question.correct_order)
    if qtype == 'drag-drop':
        return ', '.join(zone.correct_answer for zone in question.drop_zones)
    return 'Answer not available'


class ReviewScheduler:
    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utcnow, session_limit: int = 100):
        self._store = store
        self._clock = clock
        self.session_limit = session_limit
        self._items: Dict[str, ReviewItem] = self._load_items()
        self._sessions: List[StudySession] = self._load_sessions()
        self._current: Optional[StudySession] = None

    # persistence

    def _load_items(self) -> Dict[str, ReviewItem]:
        raw = self._store.load(ITEMS_KEY)
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            log_state_reset(ITEMS_KEY, 'expected an object of review items')
            return {}
        try:
            items = [ReviewItem.model_validate(v) for v in raw.values()]
        except PydanticValidationError as e:
            log_state_reset(ITEMS_KEY, str(e))
            return {}
        return {item.id: item for item in items}

    def _load_sessions(self) -> List[StudySession]:
        raw = self._store.load(SESSIONS_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            log_state_reset(SESSIONS_KEY, 'expected a list of study sessions')
            return []
        try:
            return [StudySession.model_validate(s) for s in raw][:self.session_limit]
        except PydanticValidationError as e:
            log_state_reset(SESSIONS_KEY, str(e))
            return []

    def _save_items(self) -> None:
        self._store.save(ITEMS_KEY, {k: v.to_json_dict() for k, v in self._items.items()})

    def _save_sessions(self) -> None:
        self._sessions = self._sessions[:self.session_limit]
        self._store.save(SESSIONS_KEY, [s.to_json_dict() for s in self._sessions])

    # items

    def add_questions(self, questions: Sequence, topic: str) -> List[ReviewItem]:
        """Admit generated questions into the review pool, due immediately."""
        now = self._clock()
        added = []
        for index, question in enumerate(questions):
            item = ReviewItem(
                id=f'srs_{topic}_{index}_{uuid.uuid4().hex[:8]}',
                prompt_text=question.question,
                answer_text=answer_text_for(question),
                difficulty=TYPE_DIFFICULTY.get(question.type, 2),
                next_review=now,
                last_reviewed=now,
                topic=topic,
            )
            self._items[item.id] = item
            added.append(item.model_copy(deep=True))
        self._save_items()
        LOG.info('srs_items_added', extra={'topic': topic, 'count': len(added)})
        return added

    def add_item(self, prompt_text: str, answer_text: str, difficulty: int = 2, topic: Optional[str] = None) -> ReviewItem:
        now = self._clock()
        try:
            item = ReviewItem(
                id=f'srs_{topic or "custom"}_{uuid.uuid4().hex[:8]}',
                prompt_text=prompt_text,
                answer_text=answer_text,
                difficulty=difficulty,
                next_review=now,
                last_reviewed=now,
                topic=topic,
            )
        except PydanticValidationError as e:
            raise ReviewValidationError(str(e)) from e
        self._items[item.id] = item
        self._save_items()
        return item.model_copy(deep=True)

    def schedule(self, item_id: str, quality: int) -> ReviewItem:
        """Apply a review answer of the given quality (0-5) to an item."""
        quality = check_quality(quality)
        item = self._items.get(item_id)
        if item is None:
            raise ReviewNotFoundError(f'SRS item not found: {item_id}')

        result = sm2_update(quality, item.repetitions, item.ease_factor, item.interval_days)
        now = self._clock()
        item = item.model_copy(update={
            'interval_days': result.interval_days,
            'repetitions': result.repetitions,
            'ease_factor': result.ease_factor,
            'last_reviewed': now,
            'next_review': now + timedelta(days=result.interval_days),
            'review_count': item.review_count + 1,
        })
        self._items[item_id] = item

        if self._current is not None:
            self._current.items_studied.append(item_id)
            self._current.total_count += 1
            if quality >= 3:
                self._current.correct_count += 1

        self._save_items()
        log_review(item_id, quality, item.interval_days, item.ease_factor, item.repetitions)
        return item.model_copy(deep=True)

    def get_item(self, item_id: str) -> ReviewItem:
        item = self._items.get(item_id)
        if item is None:
            raise ReviewNotFoundError(f'SRS item not found: {item_id}')
        return item.model_copy(deep=True)

    def all_items(self) -> List[ReviewItem]:
        return [i.model_copy(deep=True) for i in self._items.values()]

    def items_by_difficulty(self, difficulty: int) -> List[ReviewItem]:
        return [i.model_copy(deep=True) for i in self._items.values() if i.difficulty == difficulty]

    def due_items(self, count: int = 20) -> List[ReviewItem]:
        now = self._clock()
        due = sorted((i for i in self._items.values() if i.is_due(now)), key=lambda i: i.next_review)
        return [i.model_copy(deep=True) for i in due[:max(0, count)]]

    def remove_item(self, item_id: str) -> bool:
        if self._items.pop(item_id, None) is None:
            return False
        self._save_items()
        return True

    # sessions

    def start_session(self, session_type: SessionType = 'mixed') -> str:
        if self._current is not None:
            LOG.warning('srs_session_replaced', extra={'session_id': self._current.id})
        self._current = StudySession(id=f'session_{uuid.uuid4().hex}', start_time=self._clock(), session_type=session_type)
        return self._current.id

    def end_session(self) -> Optional[StudySession]:
        if self._current is None:
            return None
        ended = self._current.model_copy(update={'end_time': self._clock()})
        self._current = None
        self._sessions.insert(0, ended)
        self._save_sessions()
        LOG.info('srs_session_ended', extra={'session_id': ended.id, 'correct': ended.correct_count, 'total': ended.total_count})
        return ended.model_copy(deep=True)

    def current_session(self) -> Optional[StudySession]:
        return self._current.model_copy(deep=True) if self._current is not None else None

    def recent_sessions(self, count: int = 10) -> List[StudySession]:
        return [s.model_copy(deep=True) for s in self._sessions[:max(0, count)]]

    # reporting

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        items = list(self._items.values())
        answered = [s for s in self._sessions if s.total_count > 0]

        recent = answered[:10]
        average = sum(s.accuracy for s in recent) / len(recent) if recent else 0.0

        streak = 0
        for session in answered:
            if session.accuracy < 0.8:
                break
            streak += 1

        return {
            'total_items': len(items),
            'due_for_review': sum(1 for i in items if i.is_due(now)),
            'mastered_items': sum(1 for i in items if i.repetitions >= 3 and i.ease_factor >= DEFAULT_EASE_FACTOR),
            'average_accuracy': round(average * 100),
            'current_streak': streak,
        }

    def upcoming_reviews(self, days: int = 7) -> List[Dict[str, Any]]:
        now = self._clock()
        counts: Dict[str, int] = {}
        for item in self._items.values():
            days_diff = math.ceil((item.next_review - now).total_seconds() / 86400)
            if 0 <= days_diff <= days:
                key = item.next_review.date().isoformat()
                counts[key] = counts.get(key, 0) + 1
        return [{'date': d, 'count': counts[d]} for d in sorted(counts)]

    def study_plan(self, target_days: int = 30) -> Dict[str, Any]:
        start = self._clock()
        total_items = len(self._items)
        scheduled = {r['date']: r['count'] for r in self.upcoming_reviews(target_days)}

        goals = []
        for offset in range(target_days):
            day = (start + timedelta(days=offset)).date().isoformat()
            goals.append({
                'date': day,
                'items_to_review': scheduled.get(day, 0),
                # new material only in the first five days
                'new_items_to_add': min(5, total_items) if offset < 5 else 0,
            })
        return {
            'daily_goals': goals,
            'total_items': sum(g['items_to_review'] + g['new_items_to_add'] for g in goals),
        }

    # import / export

    def export_data(self) -> str:
        data = {
            'srsItems': {k: v.to_json_dict() for k, v in self._items.items()},
            'studySessions': [s.to_json_dict() for s in self._sessions],
            'exportDate': self._clock().isoformat(),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_data(self, json_data: str) -> Dict[str, int]:
        """Replace items and/or sessions from an export document.

        The whole document is validated before anything is applied.
        """
        try:
            data = json.loads(json_data)
        except (TypeError, ValueError) as e:
            raise ReviewImportError(f'Import failed: {e}') from e
        if not isinstance(data, dict):
            raise ReviewImportError('Import failed: expected a JSON object')

        items = sessions = None
        try:
            if data.get('srsItems') is not None:
                if not isinstance(data['srsItems'], dict):
                    raise ReviewImportError('Import failed: srsItems must be an object')
                items = [ReviewItem.model_validate(v) for v in data['srsItems'].values()]
            if data.get('studySessions') is not None:
                if not isinstance(data['studySessions'], list):
                    raise ReviewImportError('Import failed: studySessions must be a list')
                sessions = [StudySession.model_validate(s) for s in data['studySessions']]
        except PydanticValidationError as e:
            raise ReviewImportError(f'Import failed: {e}') from e

        if items is not None:
            self._items = {i.id: i for i in items}
            self._save_items()
        if sessions is not None:
            self._sessions = sessions
            self._save_sessions()
        LOG.info('srs_import', extra={'items': len(self._items), 'sessions': len(self._sessions)})
        return {'items': len(items or []), 'sessions': len(sessions or [])}

    def reset(self) -> None:
        self._items = {}
        self._sessions = []
        self._current = None
        self._save_items()
        self._save_sessions()
