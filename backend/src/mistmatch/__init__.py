"""
MistMatch Admin - moderation console core

Client-side controllers for reviewing pending profile verifications
and correcting missing gender attributes.
"""

__version__ = "0.1.0"
