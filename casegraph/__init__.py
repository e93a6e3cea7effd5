"""Graph analytics, search and layout for investigation entity/relation graphs."""

__version__ = "0.1.0"
