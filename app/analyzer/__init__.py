"""
PDF Analyzer Backend Application.

A small FastAPI service that forwards an uploaded PDF to a generative-AI
API and returns a normalized summary/tables/key-figures structure.
"""

__version__ = "1.0.0"
