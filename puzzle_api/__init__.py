"""
Puzzle API package.

This package provides a FastAPI application for the puzzle game (catalog,
players and scores) and the admin gallery, with record, key-value and blob
storage abstractions that have in-memory doubles for local runs and tests.
"""
