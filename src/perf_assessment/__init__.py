"""Performance Assessment.

Score a subject against themed criteria, chart the result and keep a
per-user history with CSV import and export.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
