"""
Review items with spaced repetition (SM-2 algorithm).
"""

from .spaced_repetition import (
	ReviewScheduler,
	SM2Result,
	sm2_update,
	answer_text_for,
	ReviewNotFoundError,
	ReviewValidationError,
	ReviewImportError,
)

__all__ = [
	'ReviewScheduler',
	'SM2Result',
	'sm2_update',
	'answer_text_for',
	'ReviewNotFoundError',
	'ReviewValidationError',
	'ReviewImportError',
]
