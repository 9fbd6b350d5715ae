"""
Virtual Tourist Test Suite

Structure:
- unit/: Unit tests for individual components (store, query, fetch, album, config)
- helpers.py: executors and fake HTTP payloads shared by the unit tests
"""
