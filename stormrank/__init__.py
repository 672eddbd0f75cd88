"""
StormRank package
=================

Ranks U.S. storm event types by public-health impact and economic damage.

- The CLI entry point is in `stormrank/cli.py`.
- Event-type normalization (the ordered rule chain) is in `stormrank/normalizer.py`.
- Grouping, sums and rankings are in `stormrank/aggregator.py`.
- Dataset download/loading is in `stormrank/loader.py`.
"""

__version__ = '0.3.0'
