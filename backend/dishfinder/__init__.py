"""
Dishfinder
==========

Recipe search service: normalized queries resolved through exact, full-text
and phonetic tiers, with cached results, per-identity auto-find quotas and a
background job that synthesizes recipes when nothing matches.
"""

__version__ = "1.0.0"
