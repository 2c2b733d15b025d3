"""Use-case level logic.

Tier eligibility, wallet checks and the submission flow. These modules take
already-fetched data (role ids, rows) and should be:
- deterministic
- unit-testable
- free of Discord UI code
"""
