"""
Client-side synchronized state
"""
from .collection import SynchronizedCollection

__all__ = ['SynchronizedCollection']
