from typing import Iterable, List

from studycore.models import Recommendation, TopicProgress


def generate_recommendations(progress: Iterable[TopicProgress]) -> List[Recommendation]:
    """Review, advance and focus suggestions from topic progress.

    A topic can appear in more than one recommendation.
    """
    records = list(progress)
    recommendations: List[Recommendation] = []

    weak = [p.topic for p in records if p.average_score < 0.7]
    if weak:
        recommendations.append(Recommendation(
            type='review',
            reason=f"You need more practice in: {', '.join(weak)}",
            items=weak,
            priority='high',
        ))

    strong = [p.topic for p in records if p.average_score > 0.85 and p.total_attempts > 5]
    if strong:
        recommendations.append(Recommendation(
            type='advance',
            reason=f"You're ready to advance in: {', '.join(strong)}",
            items=strong,
            priority='medium',
        ))

    inconsistent = [p.topic for p in records if p.total_attempts > 3 and 0.6 < p.average_score < 0.8]
    if inconsistent:
        recommendations.append(Recommendation(
            type='focus',
            reason=f"Focus on these areas for improvement: {', '.join(inconsistent)}",
            items=inconsistent,
            priority='medium',
        ))

    return recommendations
