"""
Face recognition (delegated to an external vision API).
"""
from .gateway import (
    Comparison,
    Match,
    Matcher,
    RecognitionGateway,
    DEFAULT_CONFIDENCE_FLOOR,
)
from .gemini import GeminiMatcher, MatcherError

__all__ = [
    'Comparison',
    'Match',
    'Matcher',
    'RecognitionGateway',
    'DEFAULT_CONFIDENCE_FLOOR',
    'GeminiMatcher',
    'MatcherError',
]
