"""Irrigation zone planning: hydraulic calculator, cycle-and-soak scheduling and water use reports."""

__version__ = "1.0.0"
