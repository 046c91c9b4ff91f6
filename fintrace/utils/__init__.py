"""
FinTrace Forensics - Utilities Package
"""
