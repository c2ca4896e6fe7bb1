"""Lotto 6/45 statistics and recommendation service."""
