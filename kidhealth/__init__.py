"""
Child Health Records API

A FastAPI backend for family child-health record keeping: parent and doctor
accounts, child profiles, and vaccination tracking against a reference
immunization schedule.
"""

__version__ = "1.0.0"
