"""Access-control services"""

from orgtree.services.access import AccessDecision, AccessEvaluator
from orgtree.services.csrf import CsrfTokenPair, CsrfTokenService
from orgtree.services.membership import MembershipService
from orgtree.services.organizations import OrganizationService
from orgtree.services.ownership_transfer import OwnershipTransferService

__all__ = [
    "AccessDecision",
    "AccessEvaluator",
    "CsrfTokenPair",
    "CsrfTokenService",
    "MembershipService",
    "OrganizationService",
    "OwnershipTransferService",
]
