"""Command-line interface adapters.

Provides CLI commands for administering users:
- create: Register a new user
- get: Show one user
- update: Change a user's name or email
- delete: Remove a user
- list: Page through users, newest first
"""
