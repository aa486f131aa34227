"""Test suite for the userhub service.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Integration tests for adapter implementations
   - Tests against real SQLite files and a live local HTTP server
   - Validates adapter behavior and error handling

3. fakes/: Port implementations for testing
   - In-memory implementations of UserStorePort and UserServicePort
   - Used by core unit tests and adapter tests
"""
