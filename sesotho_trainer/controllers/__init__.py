"""Controllers connecting the UI to the services."""

from .form_controller import FormController, WordForm, PLURAL_FIELDS, PAST_FIELDS

__all__ = ['FormController', 'WordForm', 'PLURAL_FIELDS', 'PAST_FIELDS']
