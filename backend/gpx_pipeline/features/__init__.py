"""
Feature modules for the GPX pipeline.

Each feature is a self-contained module with:
- schemas.py - Pydantic schemas
- service.py - Business logic
- config.py - Fixed constants (optional)
"""
