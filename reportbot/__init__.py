"""Forum moderation report relay: polls the report API, keeps a local store, alerts Discord."""

__version__ = "0.1.0"
