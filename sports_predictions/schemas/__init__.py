"""
Schemas Package for the Sports Predictions API.

This package contains Pydantic models used for:
- Request validation (create and partial-update bodies)
- Response serialization (`{data}` and `{data, pagination}` envelopes)
"""
