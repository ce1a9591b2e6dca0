from studycore.semantic import parse_questions


def quiz_payload():
    return {
        'questions': [
            {
                'type': 'multiple-choice',
                'question': 'Which pigment absorbs light during photosynthesis?',
                'options': ['Chlorophyll', 'Keratin', 'Melanin', 'Hemoglobin'],
                'correctAnswerIndex': 0,
                'explanation': 'Chlorophyll absorbs red and blue light.',
            },
            {'type': 'written', 'question': 'Describe the light reactions of photosynthesis.'},
        ]
    }


def enhanced_quiz_payload():
    return {
        'questions': [
            {'type': 'true-false', 'question': 'Mitochondria produce glucose.', 'correctAnswer': False},
            {
                'type': 'matching',
                'question': 'Match each organelle to its function.',
                'leftItems': ['Ribosome', 'Nucleus'],
                'rightItems': ['Stores DNA', 'Builds proteins'],
                'correctPairs': {'0': 1, '1': 0},
            },
            {
                'type': 'ordering',
                'question': 'Order the stages of mitosis.',
                'items': ['Metaphase', 'Prophase', 'Telophase', 'Anaphase'],
                'correctOrder': [1, 0, 3, 2],
            },
            {
                'type': 'drag-drop',
                'question': 'Complete the equation.',
                'content': '{{dropzone-1}} + water -> glucose + {{dropzone-2}}',
                'dropZones': [
                    {'id': 'dropzone-1', 'options': ['Carbon dioxide', 'Nitrogen'], 'correctAnswer': 'Carbon dioxide'},
                    {'id': 'dropzone-2', 'options': ['Oxygen', 'Helium'], 'correctAnswer': 'Oxygen'},
                ],
            },
        ]
    }


def analysis_payload():
    return {
        'summary': 'An overview of photosynthesis.',
        'topics': ['photosynthesis', 'chlorophyll'],
        'entities': [{'text': 'Calvin cycle', 'type': 'process'}],
        'sentiment': 'Neutral',
    }


def tips_payload():
    return {
        'tips': [
            {'id': 'tip_1', 'content': 'Chlorophyll reflects green light.', 'type': 'factual', 'source': 'p.1', 'importance': 'high'},
        ]
    }


def exercises_payload():
    return {
        'exercises': [
            {
                'type': 'practice',
                'difficulty': 'beginner',
                'title': 'Label the chloroplast',
                'objective': 'Identify chloroplast structures',
                'instructions': ['Draw a chloroplast', 'Label the thylakoid'],
                'examples': [{'content': 'Thylakoid stacks are called grana', 'type': 'text'}],
                'skills': ['recall'],
            }
        ]
    }


def mixed_question_pool():
    """Typed questions, one of each kind."""
    return parse_questions(quiz_payload()) + parse_questions(enhanced_quiz_payload())


def multiple_choice(text, answer='A'):
    return parse_questions([{
        'type': 'multiple-choice',
        'question': text,
        'options': [answer, 'B', 'C', 'D'],
        'correctAnswerIndex': 0,
    }])[0]
