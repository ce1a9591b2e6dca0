"""Generation providers.

A provider turns a ``GenerationRequest`` into a JSON-like dict. It does no
caching and no schema validation; ``GenerationService`` handles both.
"""
import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from studycore import config
from studycore.errors import ProviderError, ProviderResponseError, ProviderTimeoutError
from studycore.utils import get_logger, get_request_context, log_llm_call

LOG = get_logger()


class ProviderAPIError(ProviderError):
    pass


@dataclass
class GenerationRequest:
    operation: str
    payload: Dict[str, Any] = field(default_factory=dict)
    request_id: Optional[str] = None


class GenerationProvider:
    """Async capability ``generate(request) -> dict``; may be slow and may fail."""

    name = 'base'

    async def generate(self, request: GenerationRequest) -> Dict[str, Any]:
        raise NotImplementedError


_SYSTEM_PROMPTS = {
    config.DOCUMENT_ANALYSIS: (
        'You are a document analyst. Return a JSON object with "summary" (string), "topics" (array of short strings), '
        '"entities" (array of {"text", "type"}) and "sentiment" (Positive|Negative|Neutral).'
    ),
    config.DOCUMENT_TIPS: (
        'You extract study tips from a document. Return {"tips": [...]} where each tip has "id", "content", '
        '"type" (factual|story|example), "source", "importance" (high|medium|low) and optional "category".'
    ),
    config.QUIZ_GENERATION: (
        'You generate quiz questions from a document. Return {"questions": [...]}. Multiple-choice items are '
        '{"type": "multiple-choice", "question", "options" (4 strings), "correctAnswerIndex", "explanation"}; '
        'written items are {"type": "written", "question"}.'
    ),
    config.ENHANCED_QUIZ_GENERATION: (
        'You generate varied quiz questions from a document. Return {"questions": [...]} using the types '
        'multiple-choice, true-false, written, matching, ordering and drag-drop with their documented fields.'
    ),
    config.EXERCISE_GENERATION: (
        'You design practical exercises from a document. Return {"exercises": [...]} where each exercise has '
        '"id", "type" (practice|simulation|analysis|application|fillable), "difficulty" (beginner|intermediate|advanced), '
        '"title", "objective", "instructions", "examples", "skills" and optional "estimatedTime".'
    ),
    config.FULL_COVERAGE_QUESTIONS: (
        'You list open questions that together cover the whole document. Return {"questions": [strings], '
        '"hasMore": bool, "nextBatchToken": optional string}.'
    ),
    config.WRITTEN_ANSWER_GRADING: (
        'You grade a written answer against the source document. Return {"score": number, "maxScore": number, '
        '"feedback": string}.'
    ),
}


class OpenAIProvider(GenerationProvider):
    name = 'openai'

    def __init__(self, settings=None, client=None):
        settings = settings or config.get_settings()
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise ProviderError('OPENAI_API_KEY not set')
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT)
        self._client = client
        self.model = settings.OPENAI_MODEL
        self.temperature = settings.OPENAI_TEMPERATURE
        self.max_tokens = settings.OPENAI_MAX_TOKENS
        self.retry_attempts = settings.OPENAI_RETRY_ATTEMPTS
        self.retry_multiplier = settings.OPENAI_RETRY_MULTIPLIER
        self.retry_max_wait = settings.OPENAI_RETRY_MAX_WAIT
        LOG.info('OpenAIProvider initialized', extra={'model': self.model})

    def _build_messages(self, request: GenerationRequest) -> List[Dict[str, str]]:
        system = _SYSTEM_PROMPTS.get(request.operation)
        if system is None:
            raise ProviderError(f'Unsupported operation: {request.operation}')
        return [
            {'role': 'system', 'content': system + ' Output only valid JSON.'},
            {'role': 'user', 'content': json.dumps(request.payload, ensure_ascii=False)},
        ]

    async def _call_openai(self, messages: List[Dict[str, str]], request: GenerationRequest) -> str:
        start = time.time()
        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={'type': 'json_object'},
            )
        except openai.APITimeoutError as e:
            LOG.warning('openai_timeout', extra={'operation': request.operation, 'error': str(e)})
            raise ProviderTimeoutError(str(e)) from e
        except openai.OpenAIError as e:
            LOG.warning('openai_api_error', extra={'operation': request.operation, 'error': str(e)})
            raise ProviderAPIError(str(e)) from e
        duration_ms = int((time.time() - start) * 1000)
        usage = getattr(resp, 'usage', None)
        log_llm_call(
            request.request_id or get_request_context().get('request_id'),
            self.model,
            getattr(usage, 'prompt_tokens', 0) if usage else 0,
            getattr(usage, 'completion_tokens', 0) if usage else 0,
            duration_ms,
            operation=request.operation,
        )
        if not resp.choices:
            raise ProviderResponseError('No choices returned')
        return resp.choices[0].message.content or ''

    async def generate(self, request: GenerationRequest) -> Dict[str, Any]:
        if request.operation == config.CHAT_SESSION:
            # chat context is assembled locally; messages go through the client later
            return {
                'sessionId': uuid.uuid4().hex,
                'systemInstruction': (
                    f"Answer questions about the following document in locale {request.payload.get('locale', 'en')}.\n\n"
                    f"{request.payload.get('documentText', '')}"
                ),
                'history': [{'role': 'user', 'text': request.payload['conversationContext']}] if request.payload.get('conversationContext') else [],
            }
        messages = self._build_messages(request)
        text = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_multiplier, max=self.retry_max_wait),
            retry=retry_if_exception_type((ProviderAPIError, ProviderTimeoutError)),
            reraise=True,
        ):
            with attempt:
                text = await self._call_openai(messages, request)
        return _parse_json_object(text)


def _parse_json_object(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        # tolerate prose around the JSON object
        start, end = (text or '').find('{'), (text or '').rfind('}')
        if start == -1 or end <= start:
            raise ProviderResponseError('Provider output is not valid JSON')
        try:
            data = json.loads(text[start:end + 1])
        except ValueError as e:
            raise ProviderResponseError('Provider output is not valid JSON') from e
    if not isinstance(data, dict):
        raise ProviderResponseError('Provider output must be a JSON object')
    return data
