"""
houseshare - Source Package

A shared-housing expense tracker: houses, roommates, categories,
charges split among members, and payments against them.

DESIGN PRINCIPLES:
1. The hosted backend owns the data; we only read and write rows
2. Fail visibly - every backend error reaches the user as a message
3. No silent retries; the user decides when to try again
4. Every user action is audited
5. Storage and auth are swappable (Supabase or in-memory)
"""

__version__ = "1.0.0"
__author__ = "houseshare Team"
