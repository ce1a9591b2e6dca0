"""
Generation boundary: provider adapters, response caching with in-flight
de-duplication, and typed validation of generated questions and exercises.
"""
from .cache_manager import ResponseCache, CacheEntry, make_cache_key
from .providers import GenerationProvider, GenerationRequest, OpenAIProvider, ProviderAPIError
from .questions import (
	QuizQuestion,
	MultipleChoiceQuestion,
	WrittenQuestion,
	TrueFalseQuestion,
	MatchingQuestion,
	OrderingQuestion,
	DragDropQuestion,
	DropZone,
	AnalysisResult,
	DocumentTip,
	Entity,
	Exercise,
	ExerciseExample,
	GradedWrittenAnswer,
	FullCoverageResult,
	ChatContext,
	parse_question,
	parse_questions,
	parse_exercises,
	normalize_question_type,
)
from .generation_service import GenerationService

__all__ = [
	'ResponseCache', 'CacheEntry', 'make_cache_key',
	'GenerationProvider', 'GenerationRequest', 'OpenAIProvider', 'ProviderAPIError',
	'QuizQuestion', 'MultipleChoiceQuestion', 'WrittenQuestion', 'TrueFalseQuestion',
	'MatchingQuestion', 'OrderingQuestion', 'DragDropQuestion', 'DropZone',
	'AnalysisResult', 'DocumentTip', 'Entity', 'Exercise', 'ExerciseExample',
	'GradedWrittenAnswer', 'FullCoverageResult', 'ChatContext',
	'parse_question', 'parse_questions', 'parse_exercises', 'normalize_question_type',
	'GenerationService',
]
