"""Tests for the contact search engine.

Everything runs in process: a deterministic bag-of-words embedding provider
stands in for the real service and HTTP calls go through
``httpx.MockTransport``.
"""
