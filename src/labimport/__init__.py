"""Import portable lab archive bundles into a relational store."""

__version__ = "0.1.0"
