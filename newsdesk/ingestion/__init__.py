"""
NewsDesk Ingestion Module
=========================

Feed document parsing and content cleaning.

This module handles:
- RSS 2.0 and Atom decoding into canonical news items
- HTML stripping and summary truncation
"""
