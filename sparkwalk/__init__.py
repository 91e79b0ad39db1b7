"""Prime the airline archives and walk through Spark queries, features and models."""

__version__ = "0.1.0"
