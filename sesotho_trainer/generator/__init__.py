"""Phrase generation module."""

from .phrase_generator import GenerationOptions, PhraseGenerator, PhraseToken, phrase_text

__all__ = ['GenerationOptions', 'PhraseGenerator', 'PhraseToken', 'phrase_text']
