"""
bookingslots - bookable slot computation for services staffed by workers.
"""

__version__ = "0.1.0"
