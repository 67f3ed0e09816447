"""
Constants
Centralised storage for fix strategies, oracle sentinels and commit rules.
"""
# Fix strategies, cheapest first
STRATEGY_MINIMAL = "minimal"
STRATEGY_AGGRESSIVE = "aggressive"
STRATEGY_LAST_RESORT = "last_resort"
STRATEGY_SPECIALIZED = "specialized"

# Oracle sentinels
NEEDS_REVIEW_SENTINEL = "NEEDS_HUMAN_REVIEW"
CANNOT_FIX_SENTINEL = "CANNOT_FIX"

# Commit rules
COMMIT_TITLE = "chore: automated maintenance"
COMMIT_TRAILER_KEY = "Automated-By"
COMMIT_DESCRIPTION_LIMIT = 60

SKIP_HISTORICALLY_UNFIXABLE = "historically_unfixable"
SKIP_BUDGET_EXHAUSTED = "budget_exhausted"
SKIP_CANCELLED = "cancelled"

CLEAN_RUN_SUMMARY = "No issues found - codebase is clean!"
AGENT_VERSION = "2.0.0"
