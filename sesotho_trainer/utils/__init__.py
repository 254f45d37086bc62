"""Utils module."""

from .helpers import random_item
from .parsing import TextParser
from .paths import StorePathGenerator
from .logger import setup_logger

__all__ = [
    'random_item',
    'TextParser',
    'StorePathGenerator',
    'setup_logger'
]
