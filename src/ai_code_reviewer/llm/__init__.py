"""
LLM Review Engine

This module provides per-hunk review requests, language model
backends and reply parsing into findings.
"""

from .prompts import PromptBuilder
from .generator import UnitReviewer
from .backends import LanguageModel, GenerationConfig

__all__ = ['PromptBuilder', 'UnitReviewer', 'LanguageModel', 'GenerationConfig']
