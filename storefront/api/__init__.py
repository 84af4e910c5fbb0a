"""
API module for the storefront support backend.
"""
