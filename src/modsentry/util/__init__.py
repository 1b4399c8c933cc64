"""
Utility functions and helpers for ModSentry.
"""
