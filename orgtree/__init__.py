"""
OrgTree Access Core

Access control for multi-tenant organization hierarchies:
- Per-request organization access evaluation (role precedence, creator/superuser bypass)
- Ownership transfer workflow with audit logging
- Stateless CSRF double-submit tokens
- Membership management on top of the access evaluator
"""

__version__ = "1.0.0"
