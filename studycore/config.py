from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


# Operation names used as cache-key namespaces and TTL lookups
DOCUMENT_ANALYSIS = 'document_analysis'
QUIZ_GENERATION = 'quiz_generation'
ENHANCED_QUIZ_GENERATION = 'enhanced_quiz_generation'
EXERCISE_GENERATION = 'exercise_generation'
CHAT_SESSION = 'chat_session'
WRITTEN_ANSWER_GRADING = 'written_answer_grading'
FULL_COVERAGE_QUESTIONS = 'full_coverage_questions'
DOCUMENT_TIPS = 'document_tips'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    # durable store
    STORE_BACKEND: str = 'memory'
    STORE_PATH: str = 'data/studycore_state.json'
    STORE_KEY_PREFIX: str = 'studycore:'
    REDIS_URL: Optional[str] = None
    REDIS_HOST: str = 'localhost'
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None

    # response cache (seconds)
    CACHE_MAX_ENTRIES: int = 500
    CACHE_TTL_DOCUMENT_ANALYSIS: int = 24 * 60 * 60
    CACHE_TTL_QUIZ_GENERATION: int = 12 * 60 * 60
    CACHE_TTL_EXERCISE_GENERATION: int = 12 * 60 * 60
    CACHE_TTL_CHAT_SESSION: int = 2 * 60 * 60
    CACHE_TTL_GRADING: int = 6 * 60 * 60
    CACHE_TTL_FULL_COVERAGE: int = 6 * 60 * 60
    CACHE_TTL_DEFAULT: int = 60 * 60

    # learning state
    ATTEMPT_HISTORY_LIMIT: int = 100
    SESSION_HISTORY_LIMIT: int = 100

    # generation provider
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = 'gpt-4o-mini'
    OPENAI_TEMPERATURE: float = 0.5
    OPENAI_MAX_TOKENS: int = 2000
    OPENAI_TIMEOUT: float = 60.0
    OPENAI_RETRY_ATTEMPTS: int = 3
    OPENAI_RETRY_MULTIPLIER: int = 2
    OPENAI_RETRY_MAX_WAIT: int = 10
    ENABLE_DOCUMENT_TIPS: bool = True

    def ttl_for(self, operation: str) -> int:
        ttls = {
            DOCUMENT_ANALYSIS: self.CACHE_TTL_DOCUMENT_ANALYSIS,
            QUIZ_GENERATION: self.CACHE_TTL_QUIZ_GENERATION,
            ENHANCED_QUIZ_GENERATION: self.CACHE_TTL_QUIZ_GENERATION,
            EXERCISE_GENERATION: self.CACHE_TTL_EXERCISE_GENERATION,
            CHAT_SESSION: self.CACHE_TTL_CHAT_SESSION,
            WRITTEN_ANSWER_GRADING: self.CACHE_TTL_GRADING,
            FULL_COVERAGE_QUESTIONS: self.CACHE_TTL_FULL_COVERAGE,
        }
        return ttls.get(operation, self.CACHE_TTL_DEFAULT)


def get_settings() -> Settings:
    return Settings()
