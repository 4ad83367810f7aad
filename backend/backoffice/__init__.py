"""Catering back-office: stock documents, inventory counts, recipe costing and sales."""

__version__ = "1.0.0"
