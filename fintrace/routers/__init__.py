"""
FinTrace Forensics - Routers Package

FastAPI route handlers.

Routers:
- forensics: Investigations, evidence, analysis, damages and reports
"""
