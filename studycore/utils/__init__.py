"""Utility subpackage: logging and durable stores"""

from .logger import (
	get_logger,
	log_error,
	log_llm_call,
	log_generation,
	log_review,
	log_attempt,
	log_badge_unlock,
	log_state_reset,
	set_request_context,
	get_request_context,
)
from .store import KeyValueStore, MemoryStore, FileStore, RedisStore, create_store

__all__ = [
	'get_logger',
	'log_error',
	'log_llm_call',
	'log_generation',
	'log_review',
	'log_attempt',
	'log_badge_unlock',
	'log_state_reset',
	'set_request_context',
	'get_request_context',
	'KeyValueStore',
	'MemoryStore',
	'FileStore',
	'RedisStore',
	'create_store',
]
