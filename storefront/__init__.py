"""
Storefront cart service

The cart core of a grocery/sweets storefront:
- Product image shape normalization (legacy URLs, {full, thumb}, canonical records)
- Atomic cart persistence with recomputed totals
- Cart business rules and the HTTP boundary
"""

from storefront.core.config import StorefrontConfig, get_config, set_config

__all__ = [
    'StorefrontConfig',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
