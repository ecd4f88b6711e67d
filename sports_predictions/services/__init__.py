"""
Services Package for the Sports Predictions API.

This package holds the business logic between the HTTP surface and the
repositories:
- Identity hashing of events
- Query filter parsing and validation
- Event and prediction retrieval and mutation
- The archival sweep
- Batch JSON ingestion
"""
