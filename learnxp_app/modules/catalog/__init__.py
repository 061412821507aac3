"""
Catalog module: read-only view of courses and their learning units.

The content itself is authored elsewhere; the ledger only needs course
difficulty and the unit lists used by the completion cascade.
"""
