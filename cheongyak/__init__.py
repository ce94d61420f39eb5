"""
Housing Subscription Matching System

Matches applicant profiles against housing-subscription offers and ingests
offer announcements (PDFs and scanned images) through OCR and AI extraction.
"""

__version__ = "1.0.0"
__author__ = "Cheongyak Team"
__description__ = "AI-assisted housing subscription eligibility matching"
