"""
Badge and achievement tracking.
"""

from .engine import (
	GamificationEngine,
	GamificationResult,
	default_achievements,
	badge_icon,
	badge_rarity,
)

__all__ = [
	'GamificationEngine',
	'GamificationResult',
	'default_achievements',
	'badge_icon',
	'badge_rarity',
]
