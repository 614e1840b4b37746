"""
Topic quizzes: browsing, submission scoring and per-topic progress.
"""
