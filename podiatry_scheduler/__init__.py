"""
Podiatry Scheduler

Availability resolution and booking engine for a multi-location podiatry
clinic, exposed through staff, email and WhatsApp adapters.
"""

__version__ = "1.0.0"
