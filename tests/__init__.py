"""
Test suite for the Child Health Records API.

Contains unit tests for the schedule generator and integration tests for the
HTTP API against a SQLite database.
"""
import os

# Set environment for testing before the application is imported
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test.db")
