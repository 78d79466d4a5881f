"""
Reading List Manager

Personal reading lists with session-based authentication and anonymised
community statistics.
"""

__version__ = "1.0.0"
