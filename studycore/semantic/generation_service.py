import time
import uuid
from typing import Any, Dict, List, Optional

from studycore import config
from studycore.errors import ProviderError
from studycore.utils import get_logger, log_generation, set_request_context, get_request_context

from .cache_manager import ResponseCache, make_cache_key
from .providers import GenerationProvider, GenerationRequest
from .questions import (
    AnalysisResult,
    ChatContext,
    DocumentTip,
    Exercise,
    FullCoverageResult,
    GradedWrittenAnswer,
    QuizQuestion,
    parse_exercises,
    parse_model,
    parse_questions,
)

LOG = get_logger()


class GenerationService:
    """Routes every expensive generation call through the response cache.

    Each public method derives a cache key from its input text, operation name
    and parameters, then uses ``ResponseCache.get_or_compute`` with the
    operation's TTL (``ttl_seconds`` overrides it per call). Provider failures
    propagate to the caller and are never cached.
    """

    def __init__(self, provider: GenerationProvider, cache: Optional[ResponseCache] = None, settings=None):
        self.settings = settings or config.get_settings()
        self.provider = provider
        self.cache = cache if cache is not None else ResponseCache(max_entries=self.settings.CACHE_MAX_ENTRIES)

    async def _cached(self, operation: str, text: str, params: Dict[str, Any], produce, ttl_seconds: Optional[float]):
        key = make_cache_key(text, operation, params)
        ttl = self.settings.ttl_for(operation) if ttl_seconds is None else ttl_seconds
        request_id = get_request_context().get('request_id') or uuid.uuid4().hex

        async def compute():
            set_request_context(request_id)
            start = time.time()
            result = await produce(request_id)
            count = len(result) if isinstance(result, list) else 1
            log_generation(request_id, operation, count, int((time.time() - start) * 1000), cache_key=key)
            return result

        return await self.cache.get_or_compute(key, ttl, compute)

    async def _call(self, operation: str, payload: Dict[str, Any], request_id: str) -> Dict[str, Any]:
        return await self.provider.generate(GenerationRequest(operation=operation, payload=payload, request_id=request_id))

    async def analyze_document(self, text: str, options: Optional[Dict[str, Any]] = None, locale: str = 'en', ttl_seconds: Optional[float] = None) -> AnalysisResult:
        options = options or {}
        include_tips = options.get('enable_document_tips', self.settings.ENABLE_DOCUMENT_TIPS)
        params = {'options': options, 'locale': locale, 'tips': bool(include_tips)}

        async def produce(request_id):
            raw = await self._call(config.DOCUMENT_ANALYSIS, {'text': text, 'options': options}, request_id)
            analysis = parse_model(AnalysisResult, {**raw, 'tips': []})
            if include_tips:
                analysis.tips = await self._document_tips(text, analysis, locale, request_id)
            return analysis

        return await self._cached(config.DOCUMENT_ANALYSIS, text, params, produce, ttl_seconds)

    async def _document_tips(self, text: str, analysis: AnalysisResult, locale: str, request_id: str) -> List[DocumentTip]:
        # tips are optional; a failure here must not fail the analysis
        try:
            raw = await self._call(config.DOCUMENT_TIPS, {
                'text': text,
                'locale': locale,
                'analysis': analysis.model_dump(mode='json', by_alias=True, exclude={'tips'}),
            }, request_id)
            tips = raw.get('tips') or []
            return [parse_model(DocumentTip, t) for t in tips]
        except ProviderError as e:
            LOG.warning('document_tips_failed', extra={'error': str(e)})
            return []

    async def generate_quiz(self, text: str, locale: str = 'en', mc_count: int = 5, written_count: int = 0, mode: str = 'default', ttl_seconds: Optional[float] = None) -> List[QuizQuestion]:
        params = {'locale': locale, 'mc_count': mc_count, 'written_count': written_count, 'mode': mode}

        async def produce(request_id):
            raw = await self._call(config.QUIZ_GENERATION, {'text': text, **params}, request_id)
            return parse_questions(raw)

        return await self._cached(config.QUIZ_GENERATION, text, params, produce, ttl_seconds)

    async def generate_enhanced_quiz(self, text: str, locale: str = 'en', counts: Optional[Dict[str, int]] = None, ttl_seconds: Optional[float] = None) -> List[QuizQuestion]:
        counts = counts or {'multiple-choice': 5}
        params = {'locale': locale, 'counts': counts}

        async def produce(request_id):
            raw = await self._call(config.ENHANCED_QUIZ_GENERATION, {'text': text, **params}, request_id)
            return parse_questions(raw)

        return await self._cached(config.ENHANCED_QUIZ_GENERATION, text, params, produce, ttl_seconds)

    async def generate_exercises(self, text: str, locale: str = 'en', exercise_counts: Optional[Dict[str, int]] = None, ttl_seconds: Optional[float] = None) -> List[Exercise]:
        exercise_counts = exercise_counts or {'practice': 1, 'simulation': 0, 'analysis': 0, 'application': 0, 'fillable': 0}
        params = {'locale': locale, 'exercise_counts': exercise_counts}

        async def produce(request_id):
            raw = await self._call(config.EXERCISE_GENERATION, {'text': text, **params}, request_id)
            return parse_exercises(raw)

        return await self._cached(config.EXERCISE_GENERATION, text, params, produce, ttl_seconds)

    async def generate_full_coverage_questions(self, text: str, locale: str = 'en', batch_token: Optional[str] = None, ttl_seconds: Optional[float] = None) -> FullCoverageResult:
        params = {'locale': locale, 'batch_token': batch_token}

        async def produce(request_id):
            raw = await self._call(config.FULL_COVERAGE_QUESTIONS, {'text': text, **params}, request_id)
            return parse_model(FullCoverageResult, raw)

        return await self._cached(config.FULL_COVERAGE_QUESTIONS, text, params, produce, ttl_seconds)

    async def grade_written_answer(self, document_text: str, question: str, user_answer: str, locale: str = 'en', ttl_seconds: Optional[float] = None) -> GradedWrittenAnswer:
        params = {'locale': locale, 'question': question, 'user_answer': user_answer}

        async def produce(request_id):
            raw = await self._call(config.WRITTEN_ANSWER_GRADING, {'documentText': document_text, **params}, request_id)
            return parse_model(GradedWrittenAnswer, raw)

        return await self._cached(config.WRITTEN_ANSWER_GRADING, document_text, params, produce, ttl_seconds)

    async def create_chat(self, document_text: str, locale: str = 'en', conversation_context: Optional[str] = None, ttl_seconds: Optional[float] = None) -> ChatContext:
        params = {'locale': locale, 'conversation_context': conversation_context or ''}

        async def produce(request_id):
            raw = await self._call(config.CHAT_SESSION, {
                'documentText': document_text,
                'locale': locale,
                'conversationContext': conversation_context,
            }, request_id)
            return parse_model(ChatContext, raw)

        return await self._cached(config.CHAT_SESSION, document_text, params, produce, ttl_seconds)
