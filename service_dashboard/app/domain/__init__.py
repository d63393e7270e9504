"""
Business records and request payloads (pydantic models).
"""
