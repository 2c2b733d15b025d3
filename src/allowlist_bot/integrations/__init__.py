"""Integration adapters for external systems (Discord, Google Sheets).

Keep these modules small and testable:
- No policy decisions
- Pure IO + parsing helpers
"""
