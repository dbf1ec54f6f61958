"""Rideboard leaderboard backend."""
