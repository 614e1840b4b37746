"""
Gamification: XP, levels, streaks, badges, topic progress and the learning
module routes that feed them.
"""
