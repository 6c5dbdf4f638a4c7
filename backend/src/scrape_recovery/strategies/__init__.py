"""
Delay strategies for retrying failed scraping operations.
"""
from .base import BaseStrategy
from .exponential import ExponentialBackoffStrategy
from .fixed import FixedDelayStrategy
from .rate_limit import RateLimitStrategy


__all__ = [
    'BaseStrategy',
    'ExponentialBackoffStrategy',
    'FixedDelayStrategy',
    'RateLimitStrategy'
]
