"""
Slot availability and ranking engine for salon bookings.
"""

__version__ = "0.3.0"
