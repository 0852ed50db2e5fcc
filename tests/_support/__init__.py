"""
Test support utilities for relay tests.

Helpers that are not fixtures but are shared across test modules: the
in-memory executor, record builders and a settings factory.
"""
