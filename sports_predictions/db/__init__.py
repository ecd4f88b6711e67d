"""
Database Package for the Sports Predictions API.

This package handles all database-related operations including:
- Model definitions using SQLAlchemy ORM
- The Database handle that owns the connection pool
- Table creation for new deployments
"""
