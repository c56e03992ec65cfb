"""
Shared error handling package.

Translates domain errors into `{"error", "detail"}` JSON responses.
"""
