"""Test fixtures for MistMatch Admin tests.

Provides:
- Sample user records (pending queue and gender datasets)
- In-memory RecordSource and PhotoResolver stand-ins
"""

from .users import *
