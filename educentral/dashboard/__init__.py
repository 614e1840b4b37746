"""
Dashboard read models for students and administrators.
"""
