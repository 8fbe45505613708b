"""
Sales Tracker.

Field sales inquiries and conveyance claims with owner approval,
mirrored to an external spreadsheet.
"""

__version__ = "0.1.0"
