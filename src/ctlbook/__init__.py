"""Interactive control documents for a resource-control agent."""

__version__ = "0.1.0"
