import os
import sys
import logging
import pathlib
import contextvars
from logging.handlers import RotatingFileHandler
from pythonjsonlogger import jsonlogger

_request_ctx_var = contextvars.ContextVar('request_ctx', default={})


def set_request_context(request_id: str, user_id: str = None):
    _request_ctx_var.set({'request_id': request_id, 'user_id': user_id})


def get_request_context():
    return _request_ctx_var.get()


def _inject_request_context(record):
    ctx = get_request_context()
    # explicit extra={'request_id': ...} wins over the context value
    if getattr(record, 'request_id', None) is None:
        record.request_id = ctx.get('request_id')
    if getattr(record, 'user_id', None) is None:
        record.user_id = ctx.get('user_id')
    return True


def get_logger(name: str = 'studycore'):
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')
    # empty path disables file logging (library default)
    LOG_FILE_PATH = os.getenv('LOG_FILE_PATH', '')
    LOG_MAX_SIZE = int(os.getenv('LOG_MAX_SIZE', str(10 * 1024 * 1024)))
    LOG_MAX_FILES = int(os.getenv('LOG_MAX_FILES', '7'))

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL.upper())

    ch = logging.StreamHandler(sys.stdout)
    if LOG_FORMAT == 'json':
        fmt = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s')
    else:
        fmt = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if LOG_FILE_PATH:
        log_path = pathlib.Path(LOG_FILE_PATH)
        if not log_path.is_absolute():
            log_path = pathlib.Path(os.getcwd()) / log_path
        log_path.mkdir(parents=True, exist_ok=True)

        combined = RotatingFileHandler(log_path / 'combined.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
        combined.setFormatter(fmt)
        logger.addHandler(combined)

        errors = RotatingFileHandler(log_path / 'error.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
        errors.setLevel(logging.ERROR)
        errors.setFormatter(fmt)
        logger.addHandler(errors)

    f = logging.Filter()
    f.filter = _inject_request_context
    logger.addFilter(f)
    logger.propagate = False

    return logger


def log_error(error: Exception, context: dict = None):
    logger = get_logger()
    logger.exception('error', exc_info=error, extra=context or {})


def log_llm_call(request_id: str, model: str, prompt_tokens: int, completion_tokens: int, duration_ms: float, operation: str = None):
    logger = get_logger()
    logger.info('llm_call', extra={'request_id': request_id, 'model': model, 'operation': operation, 'prompt_tokens': prompt_tokens, 'completion_tokens': completion_tokens, 'duration_ms': duration_ms})


def log_generation(request_id: str, operation: str, item_count: int, duration_ms: float, cache_key: str = None):
    logger = get_logger()
    logger.info('generation', extra={
        'request_id': request_id,
        'operation': operation,
        'item_count': item_count,
        'duration_ms': duration_ms,
        'cache_key': cache_key,
    })


def log_review(item_id: str, quality: int, interval_days: int, ease_factor: float, repetitions: int):
    logger = get_logger()
    logger.info('srs_review', extra={
        'item_id': item_id,
        'quality': quality,
        'interval_days': interval_days,
        'ease_factor': ease_factor,
        'repetitions': repetitions,
    })


def log_attempt(attempt_id: str, topics: list, score: float, max_score: float, question_count: int):
    logger = get_logger()
    logger.info('attempt_recorded', extra={
        'attempt_id': attempt_id,
        'topics': topics,
        'score': score,
        'max_score': max_score,
        'question_count': question_count,
    })


def log_badge_unlock(badge_id: str, rarity: str):
    logger = get_logger()
    logger.info('badge_unlocked', extra={'badge_id': badge_id, 'rarity': rarity})


def log_state_reset(store_key: str, reason: str):
    logger = get_logger()
    logger.warning('state_slice_reset', extra={'store_key': store_key, 'reason': reason})
