"""
Adaptive learning: topic progress tracking, question selection and
study recommendations.
"""

from .classifier import TopicClassifier, KeywordTopicClassifier, DEFAULT_TOPIC
from .progress_tracker import ProgressTracker, AttemptRecord, TopicNotFoundError, difficulty_for
from .selector import select_questions, effective_difficulty, next_level
from .recommendations import generate_recommendations

__all__ = [
	'TopicClassifier',
	'KeywordTopicClassifier',
	'DEFAULT_TOPIC',
	'ProgressTracker',
	'AttemptRecord',
	'TopicNotFoundError',
	'difficulty_for',
	'select_questions',
	'effective_difficulty',
	'next_level',
	'generate_recommendations',
]
