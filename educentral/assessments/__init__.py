"""
Tests, attempts and answers: routes, score aggregation and enhanced analysis.
"""
