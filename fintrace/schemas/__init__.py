"""
FinTrace Forensics - Schemas Package

Pydantic schemas for request/response validation.
"""
