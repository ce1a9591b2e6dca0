from studycore import config
from studycore.config import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.STORE_BACKEND == 'memory'
    assert s.CACHE_MAX_ENTRIES == 500
    assert s.ATTEMPT_HISTORY_LIMIT == 100
    assert s.ENABLE_DOCUMENT_TIPS is True


def test_ttl_policy():
    s = Settings(_env_file=None)
    assert s.ttl_for(config.DOCUMENT_ANALYSIS) == 24 * 3600
    assert s.ttl_for(config.QUIZ_GENERATION) == 12 * 3600
    assert s.ttl_for(config.ENHANCED_QUIZ_GENERATION) == 12 * 3600
    assert s.ttl_for(config.EXERCISE_GENERATION) == 12 * 3600
    assert s.ttl_for(config.CHAT_SESSION) == 2 * 3600
    assert s.ttl_for(config.WRITTEN_ANSWER_GRADING) == 6 * 3600
    assert s.ttl_for(config.FULL_COVERAGE_QUESTIONS) == 6 * 3600
    assert s.ttl_for('something_else') == 3600


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('CACHE_TTL_QUIZ_GENERATION', '60')
    monkeypatch.setenv('STORE_BACKEND', 'file')
    monkeypatch.setenv('ENABLE_DOCUMENT_TIPS', 'false')
    s = Settings(_env_file=None)
    assert s.ttl_for(config.QUIZ_GENERATION) == 60
    assert s.STORE_BACKEND == 'file'
    assert s.ENABLE_DOCUMENT_TIPS is False
