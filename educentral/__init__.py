"""
EduCentral assessment service.

Tests and quizzes with AI-graded open answers, gamified learning progress
and a live WebSocket dashboard for administrators.
"""

__version__ = "1.0.0"
