"""
TradeSim - Achievements
"""
from tradesim.core.achievements.evaluator import AchievementEvaluator, AchievementChecker, CHECKERS

__all__ = ["AchievementEvaluator", "AchievementChecker", "CHECKERS"]
