"""UI components for the Sesotho trainer."""

from .trainer_view import TrainerView

__all__ = [
    'TrainerView',
]
