"""Vehicle-aware route planning and export for camper trips."""

__version__ = "1.0.0"
