"""
Core modules for the sales tracker.

This package contains identity and session handling, the approval
workflows, expense calculations and report queries.
"""
