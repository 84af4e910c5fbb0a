"""
Storefront support backend.

Remote persistence for the customer-support chat and the catalog lookups
its tools call, served over FastAPI and backed by Supabase.
"""

from storefront.core.config import SupportConfig, get_config, set_config

__all__ = [
    'SupportConfig',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
