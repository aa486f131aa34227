"""Fake/mock implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeUserStorePort: In-memory user persistence
- FakeUserServicePort: Captured use-case calls with canned results
"""

from .service import FakeUserServicePort
from .store import FakeUserStorePort

__all__ = [
    "FakeUserServicePort",
    "FakeUserStorePort",
]
