"""Utility functions."""

import random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


def random_item(items: Sequence[T], rng: Optional[random.Random] = None) -> T:
    """Pick a uniformly random element of a non-empty sequence."""
    return (rng or random).choice(items)
