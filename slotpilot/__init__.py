"""
slotpilot - propose meeting slots from free-text calendars.
"""

__version__ = "0.1.0"
