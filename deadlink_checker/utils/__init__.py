"""
Utility modules for the dead link checker.

This package contains header profiles, the exception hierarchy and logging
setup.
"""
