"""Parkline - typed parking slot allocation with FIFO waitlists and hourly billing"""

__version__ = "1.0.0"
