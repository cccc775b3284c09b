"""
Lagrum - Swedish legal citation parsing, validation and point-in-time resolution.
"""

__version__ = "0.1.0"
