"""Collection route assignment and prioritization engine for waste fleets."""

__version__ = "0.1.0"
