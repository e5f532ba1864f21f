"""Hash and row models, filter rules, tries, Bloom filter, tag cache, payload analysis,
SQL statements and checkpoint tracking for a Kaspa block indexer."""

__version__ = "0.1.0"