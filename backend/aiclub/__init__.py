"""Application package for the AI club backend.

This package exposes the service, repository and model modules used by
the FastAPI application in `aiclub.main`. Individual modules contain the
concrete implementations and documentation.
"""
