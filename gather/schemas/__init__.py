"""
Pydantic Schemas
================

Request bodies for the API; responses are built from ``to_api_dict``.
"""
