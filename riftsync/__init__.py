"""riftsync: incremental, rate-limit-aware match-history cache for Riot Match-V5."""

__version__ = "0.1.0"
