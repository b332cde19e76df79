"""Utility modules for API-specific functionality.

- **responses**: orjson response class and envelope rendering
"""
