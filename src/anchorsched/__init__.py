"""anchorsched - anchor-based schedule resolution for supplier checklists."""

__version__ = "0.1.0"
