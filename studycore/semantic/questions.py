"""Typed payloads for everything the generation provider returns.

Provider JSON is loosely shaped; ``parse_*`` helpers normalize it into these
models so the learning-state engine never works on untyped dicts.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError, model_validator

from studycore.errors import ProviderResponseError
from studycore.models import CamelModel, DifficultyLevel
from studycore.utils import get_logger

LOG = get_logger()


class MultipleChoiceQuestion(CamelModel):
    type: Literal['multiple-choice'] = 'multiple-choice'
    question: str
    options: List[str] = Field(min_length=2)
    correct_answer_index: int = Field(ge=0)
    explanation: str = ''

    @model_validator(mode='after')
    def check_answer_index(self):
        if self.correct_answer_index >= len(self.options):
            raise ValueError('correct_answer_index out of range')
        return self


class WrittenQuestion(CamelModel):
    type: Literal['written'] = 'written'
    question: str


class TrueFalseQuestion(CamelModel):
    type: Literal['true-false'] = 'true-false'
    question: str
    correct_answer: bool
    explanation: str = ''


class MatchingQuestion(CamelModel):
    type: Literal['matching'] = 'matching'
    question: str
    left_items: List[str]
    right_items: List[str]
    # left index -> right index
    correct_pairs: Dict[int, int]
    explanation: str = ''

    @model_validator(mode='after')
    def check_pairs(self):
        for left, right in self.correct_pairs.items():
            if not (0 <= left < len(self.left_items) and 0 <= right < len(self.right_items)):
                raise ValueError('correct_pairs references a missing item')
        return self


class OrderingQuestion(CamelModel):
    type: Literal['ordering'] = 'ordering'
    question: str
    items: List[str]
    correct_order: List[int]
    explanation: str = ''

    @model_validator(mode='after')
    def check_order(self):
        if sorted(self.correct_order) != list(range(len(self.items))):
            raise ValueError('correct_order must be a permutation of item indexes')
        return self


class DropZone(CamelModel):
    id: str
    options: List[str] = Field(default_factory=list)
    correct_answer: str


class DragDropQuestion(CamelModel):
    type: Literal['drag-drop'] = 'drag-drop'
    question: str
    # text with placeholders like {{dropzone-1}}
    content: str
    drop_zones: List[DropZone]
    explanation: str = ''


QuizQuestion = Annotated[
    Union[MultipleChoiceQuestion, WrittenQuestion, TrueFalseQuestion, MatchingQuestion, OrderingQuestion, DragDropQuestion],
    Field(discriminator='type'),
]

QUESTION_ADAPTER = TypeAdapter(QuizQuestion)

_TYPE_SYNONYMS = {
    'mcq': 'multiple-choice',
    'multiple_choice': 'multiple-choice',
    'multiple-choice': 'multiple-choice',
    'multiplechoice': 'multiple-choice',
    'written': 'written',
    'short_answer': 'written',
    'short-answer': 'written',
    'open': 'written',
    'true-false': 'true-false',
    'true_false': 'true-false',
    'truefalse': 'true-false',
    'tf': 'true-false',
    'matching': 'matching',
    'ordering': 'ordering',
    'order': 'ordering',
    'drag-drop': 'drag-drop',
    'drag_drop': 'drag-drop',
    'dragdrop': 'drag-drop',
}


class DocumentTip(CamelModel):
    id: str = ''
    content: str
    type: Literal['factual', 'story', 'example'] = 'factual'
    source: str = ''
    importance: Literal['high', 'medium', 'low'] = 'medium'
    category: Optional[str] = None


class Entity(CamelModel):
    text: str
    type: str


class AnalysisResult(CamelModel):
    summary: str
    topics: List[str] = Field(default_factory=list)
    entities: List[Entity] = Field(default_factory=list)
    sentiment: str = 'Neutral'
    tips: List[DocumentTip] = Field(default_factory=list)


class ExerciseExample(CamelModel):
    title: Optional[str] = None
    content: str
    type: Optional[Literal['text', 'code', 'diagram', 'table']] = None


class Exercise(CamelModel):
    id: str
    type: Literal['practice', 'simulation', 'analysis', 'application', 'fillable']
    difficulty: DifficultyLevel = 'intermediate'
    title: str
    objective: str = ''
    instructions: List[str] = Field(default_factory=list)
    examples: List[ExerciseExample] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    estimated_time: Optional[str] = None
    fillable_elements: List[Dict[str, Any]] = Field(default_factory=list)


class GradedWrittenAnswer(CamelModel):
    score: float = Field(ge=0)
    max_score: float = Field(gt=0)
    feedback: str = ''

    @model_validator(mode='after')
    def check_score(self):
        if self.score > self.max_score:
            raise ValueError('score cannot exceed max_score')
        return self


class FullCoverageResult(CamelModel):
    questions: List[str]
    has_more: bool = False
    next_batch_token: Optional[str] = None


class ChatContext(CamelModel):
    """Opaque conversation seed returned by the provider for a document chat."""
    session_id: str = ''
    system_instruction: str = ''
    history: List[Dict[str, Any]] = Field(default_factory=list)


def normalize_question_type(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    return _TYPE_SYNONYMS.get(raw.strip().lower().replace(' ', '_'))


def parse_question(raw: Dict[str, Any]) -> QuizQuestion:
    if not isinstance(raw, dict):
        raise ProviderResponseError('question payload must be an object')
    data = dict(raw)
    qtype = normalize_question_type(data.get('type'))
    if qtype is None:
        raise ProviderResponseError(f"unknown question type: {data.get('type')!r}")
    data['type'] = qtype
    try:
        return QUESTION_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ProviderResponseError(str(e)) from e


def parse_questions(raw: Any) -> List[QuizQuestion]:
    """Validate a list of provider questions, dropping malformed entries.

    Accepts a bare list or an object with a ``questions`` list. Raises
    ProviderResponseError when nothing usable remains.
    """
    if isinstance(raw, dict):
        raw = raw.get('questions')
    if not isinstance(raw, list):
        raise ProviderResponseError('expected a list of questions')
    out: List[QuizQuestion] = []
    for idx, item in enumerate(raw):
        try:
            out.append(parse_question(item))
        except ProviderResponseError as e:
            LOG.warning('question_dropped', extra={'index': idx, 'error': str(e)})
    if raw and not out:
        raise ProviderResponseError('No valid questions generated by provider')
    return out


def parse_model(model_cls, raw: Any):
    try:
        return model_cls.model_validate(raw)
    except ValidationError as e:
        LOG.warning('provider_payload_invalid', extra={'model': model_cls.__name__, 'error': str(e)})
        raise ProviderResponseError(str(e)) from e


def parse_exercises(raw: Any) -> List[Exercise]:
    if isinstance(raw, dict):
        raw = raw.get('exercises')
    if not isinstance(raw, list):
        raise ProviderResponseError('expected a list of exercises')
    exercises = []
    for idx, item in enumerate(raw):
        if isinstance(item, dict) and not item.get('id'):
            item = {**item, 'id': f'exercise_{idx + 1}'}
        exercises.append(parse_model(Exercise, item))
    return exercises
