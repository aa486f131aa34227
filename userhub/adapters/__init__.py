"""External adapters for the userhub service.

This package contains all external dependencies (SQLite, PostgreSQL,
HTTP server, CLI) and provides implementations of the core port interfaces.

Adapter Organization:

- store/: Adapters for user persistence (SQLite, PostgreSQL)
- http/: HTTP API exposing the user use cases
- cli/: Command-line interface for administrators
"""
