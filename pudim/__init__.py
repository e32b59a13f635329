"""Pudim Score: GitHub profile scoring with a consent-aware leaderboard."""

__version__ = "1.0.0"
