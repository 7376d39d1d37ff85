"""Hybrid relevance ranking for collected content.

Scores content items against research statements by blending keyword
matching, embedding similarity, and feedback learned from user ratings.
"""

__version__ = "0.1.0"
