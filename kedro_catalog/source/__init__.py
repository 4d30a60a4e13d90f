"""Python source analysis: syntax view and dataset reference matching."""

from .matcher import MatchResult, ReferenceMatcher
from .syntax import SourceTree, SyntaxElement

__all__ = ["MatchResult", "ReferenceMatcher", "SourceTree", "SyntaxElement"]
