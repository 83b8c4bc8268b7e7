"""
Unit Tests

Unit tests run in isolation without external dependencies.
Redis is mocked and all other storage uses the in-memory store.

These tests are fast and can run without Docker or any services running.
"""
