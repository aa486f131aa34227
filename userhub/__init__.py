"""Userhub: user management service.

A hexagonal-architecture service for creating, reading, updating,
deleting and listing users. The core domain (userhub.core) has no
third-party dependencies; persistence, the HTTP API and the CLI live in
userhub.adapters and are wired together in userhub.main.
"""

__version__ = "0.1.0"
