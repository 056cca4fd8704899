"""
Request/response schemas (pydantic v2).
"""
