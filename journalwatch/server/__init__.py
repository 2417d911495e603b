"""
JournalWatch HTTP server
"""
