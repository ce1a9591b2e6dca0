from studycore.adaptive import KeywordTopicClassifier, TopicClassifier
from studycore.models import QuizAttempt, QuestionResult


def test_keywords_skip_short_words_and_stopwords():
    c = KeywordTopicClassifier()
    assert c.keywords('Which of these is the role of ATP in cells?') == ['role', 'cells']
    assert c.classify('Explain how Photosynthesis works in Plants') == {'photosynthesis', 'works', 'plants'}


def test_keyword_limit_and_dedup():
    c = KeywordTopicClassifier(max_keywords=2)
    assert c.keywords('Enzymes enzymes catalysis substrate') == ['enzymes', 'catalysis']


def test_custom_stopwords():
    c = KeywordTopicClassifier(stopwords=['enzymes'])
    assert 'enzymes' not in c.classify('Enzymes catalyse reactions')


def test_default_topics_for_attempt():
    c = KeywordTopicClassifier()
    with_results = QuizAttempt(score=1, max_score=1, question_results=[QuestionResult(question_index=0, is_correct=True)])
    assert c.topics_for_attempt(with_results) == ['general']
    assert c.topics_for_attempt(QuizAttempt(score=0, max_score=1)) == []
    assert issubclass(KeywordTopicClassifier, TopicClassifier)
