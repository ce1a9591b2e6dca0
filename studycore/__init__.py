"""
studycore: personalized study engine with spaced repetition, adaptive
question selection, gamification and cached LLM generation.
"""

__version__ = '1.0.0'

from .engine import LearningEngine, AttemptOutcome

__all__ = [
	'LearningEngine',
	'AttemptOutcome',
	'__version__',
]
