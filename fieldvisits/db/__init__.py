"""Async database engine and session management."""
