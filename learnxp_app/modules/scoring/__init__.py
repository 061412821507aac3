"""
Scoring module: pure reward pricing.

Nothing here touches the database or Flask; callers pass in the rate
table snapshot they priced with.
"""
