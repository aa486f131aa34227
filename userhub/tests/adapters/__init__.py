"""Integration tests for adapter implementations.

These tests exercise adapters against real or faked external systems
to validate correct translation between core domain models and
external formats.
"""
