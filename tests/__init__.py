"""Test suite for the PDF analyzer service."""
