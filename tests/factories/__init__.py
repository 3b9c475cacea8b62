"""Test data factories using factory_boy.

These factories generate realistic test data for PoolWatch models.
"""

from tests.factories.pool import PoolKeysFactory, TokenMetadataFactory

__all__ = [
    "PoolKeysFactory",
    "TokenMetadataFactory",
]
