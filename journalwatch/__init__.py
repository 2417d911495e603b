"""
JournalWatch - activity query service for journal entries
"""

__version__ = "0.1.0"
