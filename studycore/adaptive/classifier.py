import re
from typing import FrozenSet, Iterable, List, Optional, Set

from studycore.models import QuizAttempt

DEFAULT_TOPIC = 'general'

STOPWORDS = frozenset({
    'about', 'above', 'after', 'again', 'against', 'also', 'among', 'because', 'been', 'before', 'being',
    'below', 'between', 'both', 'does', 'doing', 'during', 'each', 'following', 'from', 'further', 'have',
    'having', 'here', 'into', 'more', 'most', 'must', 'only', 'other', 'over', 'same', 'should', 'some',
    'such', 'than', 'that', 'their', 'them', 'then', 'there', 'these', 'they', 'this', 'those', 'through',
    'under', 'until', 'very', 'were', 'what', 'when', 'where', 'which', 'while', 'will', 'with', 'would',
    'your', 'true', 'false', 'correct', 'answer', 'describe', 'explain', 'statement',
})

_WORD_RE = re.compile(r"[^\W\d_][\w'-]*", re.UNICODE)


class TopicClassifier:
    """Maps question text to area labels, and attempts to the topics they touch."""

    def classify(self, question_text: str) -> Set[str]:
        raise NotImplementedError

    def topics_for_attempt(self, attempt: QuizAttempt) -> List[str]:
        return [DEFAULT_TOPIC] if attempt.question_results else []


class KeywordTopicClassifier(TopicClassifier):
    """Areas are the first ``max_keywords`` distinct content words of a question.

    A content word is at least ``min_length`` letters long and not a stopword;
    comparison is case-insensitive.
    """

    def __init__(self, min_length: int = 4, max_keywords: int = 3, stopwords: Optional[Iterable[str]] = None):
        self.min_length = min_length
        self.max_keywords = max_keywords
        self.stopwords: FrozenSet[str] = frozenset(w.lower() for w in stopwords) if stopwords is not None else STOPWORDS

    def keywords(self, text: str) -> List[str]:
        out: List[str] = []
        for word in _WORD_RE.findall((text or '').lower()):
            word = word.strip("'-")
            if len(word) < self.min_length or word in self.stopwords or word in out:
                continue
            out.append(word)
            if len(out) >= self.max_keywords:
                break
        return out

    def classify(self, question_text: str) -> Set[str]:
        return set(self.keywords(question_text))
