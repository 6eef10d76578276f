"""
Scope Resolver

Decides which company's data a caller may see. Resolved once per request;
the resulting Scope is passed explicitly to every downstream call.
"""

from typing import Iterable, Optional, Union

from transit_dash.errors import InvalidScopeRequest, MisconfiguredAccount
from transit_dash.models.enums import Role
from transit_dash.models.metrics import Scope

ALL_COMPANIES = "all"


def resolve_scope(
    roles: Iterable[Union[Role, str]],
    assigned_company_id: Optional[int],
    requested_company_id: Optional[Union[int, str]] = None,
) -> Scope:
    """
    Resolve the effective company scope.

    1. A company-restricted role always gets its own company; the request is
       ignored. No assigned company is a MisconfiguredAccount.
    2. "all" (or nothing) requested -> all companies.
    3. Otherwise the requested company.
    """
    parsed = Role.parse_many(r.value if isinstance(r, Role) else r for r in roles)

    if parsed & Role.restricted_roles():
        if assigned_company_id is None:
            raise MisconfiguredAccount("No company assigned to this bus owner account")
        return Scope(company_id=int(assigned_company_id), restricted_to_company=True)

    if requested_company_id is None:
        return Scope.all_companies()

    if isinstance(requested_company_id, str):
        requested = requested_company_id.strip()
        if requested == "" or requested.lower() == ALL_COMPANIES:
            return Scope.all_companies()
        try:
            return Scope(company_id=int(requested))
        except ValueError:
            raise InvalidScopeRequest(f"Invalid company id: {requested_company_id!r}")

    return Scope(company_id=int(requested_company_id))
