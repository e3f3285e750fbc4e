"""
Clinica AI Agent - conversational appointment booking for a medical clinic.
"""

__version__ = "1.0.0"
