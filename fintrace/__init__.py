"""
FinTrace Forensics

Forensic financial analysis engine: risk scoring, anomaly detection,
damage quantification and evidence custody for investigations.
"""

__version__ = "1.0.0"
