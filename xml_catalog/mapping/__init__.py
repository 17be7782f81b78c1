"""Record normalization and overlay merge components."""

from .record_normalizer import RecordNormalizer
from .merge_engine import MergeEngine

__all__ = ['RecordNormalizer', 'MergeEngine']
