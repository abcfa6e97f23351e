"""Unit tests for TextReader.

This package contains test modules for all components of the TextReader application.
Tests use pytest with asyncio support; audio output and network calls are replaced
via monkeypatch or fake engines.
"""
