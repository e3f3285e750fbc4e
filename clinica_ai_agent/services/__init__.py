"""
Service layer for the Clinica AI Agent system.
"""
