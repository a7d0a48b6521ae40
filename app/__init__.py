"""
ConnectX Freelance Marketplace
Recruiters post jobs and squad projects; candidates apply or are matched into squads.

Architecture:
- MongoDB: Jobs, squad projects (roles, modules, squads), candidates, applications
- PostgreSQL: Payout ledger (one row per released payout)
- Gemini: Drafting plans and proposing squads (output always validated)
"""

__version__ = "1.0.0"
