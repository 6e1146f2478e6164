"""
Shared constants, exceptions and numerical helpers.
"""
