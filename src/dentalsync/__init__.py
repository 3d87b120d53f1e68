"""
DentalSync: clinical-record reconciliation for dental consultations

Keeps one consistent view of a patient's tooth chart and consultation
sections while edits arrive from the backing store, a realtime change
feed and locally held (including voice-extracted) tentative data.
"""

__version__ = "0.1.0"
__author__ = "DentalSync Team"
__description__ = "Dental consultation and tooth chart reconciliation engine"
