"""Error tracking backends."""
from .base import BaseErrorTracker, RecurringErrorCounter
from .memory import InMemoryErrorTracker
from .sqlalchemy_tracker import SQLAlchemyErrorTracker

__all__ = [
    'BaseErrorTracker',
    'InMemoryErrorTracker',
    'SQLAlchemyErrorTracker',
    'RecurringErrorCounter',
]
