"""County COVID-19 case rates vs. religious adherence."""

__version__ = "0.0.1"
