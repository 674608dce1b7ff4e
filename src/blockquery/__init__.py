"""blockquery: dotted-path queries and comparison predicates over configuration values."""

__version__ = "0.1.0"
