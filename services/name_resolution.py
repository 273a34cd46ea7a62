"""
Name resolution for CRM identifiers.

Builds lookup tables from the auxiliary fetches of one aggregation cycle:

  customers     -> customer id         -> company name
  users         -> user id/email/login -> display name
  salespersons  -> id/email/signature  -> display name

Resolution chain for a creator identifier:
  1. Name supplied by the CRM on the record itself
  2. Salesperson map (the more complete source)
  3. User map
  4. The raw identifier verbatim
  5. "Okänd användare"
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from services.record_fields import as_text, first_text

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Okänd användare"

# The CRM appends a tenant suffix to some login identifiers.
_KNOWN_SUFFIX = re.compile(r"@001$")

CUSTOMER_ID_FIELDS = ("id", "customerId", "customerNumber")
CUSTOMER_NAME_FIELDS = ("name", "companyName", "customerName")

PERSON_ID_FIELDS = (
    "id",
    "userId",
    "salespersonId",
    "email",
    "username",
    "userName",
    "signature",
    "login",
)
PERSON_NAME_FIELDS = ("name", "fullName", "displayName", "salespersonName")


def normalize_user_key(raw: Any) -> Optional[str]:
    """Lowercase, trim and strip the known suffix so one person has one key."""
    text = as_text(raw)
    if not text:
        return None
    key = _KNOWN_SUFFIX.sub("", text.lower()).strip()
    return key or None


def _person_name(record: dict[str, Any]) -> Optional[str]:
    name = first_text(record, PERSON_NAME_FIELDS)
    if name:
        return name
    parts = [first_text(record, ("firstName", "firstname")), first_text(record, ("lastName", "lastname"))]
    joined = " ".join(part for part in parts if part)
    return joined or None


def build_customer_map(customers: Iterable[dict[str, Any]]) -> dict[str, str]:
    """Customer id -> name. Entries without an id or a name are skipped."""
    customer_map: dict[str, str] = {}
    for customer in customers:
        if not isinstance(customer, dict):
            continue
        customer_id = first_text(customer, CUSTOMER_ID_FIELDS)
        name = first_text(customer, CUSTOMER_NAME_FIELDS)
        if customer_id and name:
            customer_map[customer_id] = name
    return customer_map


def _build_person_map(people: Iterable[dict[str, Any]], source: str) -> dict[str, str]:
    person_map: dict[str, str] = {}
    skipped = 0
    for person in people:
        if not isinstance(person, dict):
            continue
        name = _person_name(person)
        if not name:
            skipped += 1
            continue
        for id_field in PERSON_ID_FIELDS:
            key = normalize_user_key(person.get(id_field))
            if key:
                person_map.setdefault(key, name)
    logger.debug(
        "Built %s map with %d keys",
        source,
        len(person_map),
        extra={"skipped_without_name": skipped},
    )
    return person_map


def build_user_map(users: Iterable[dict[str, Any]]) -> dict[str, str]:
    """Normalized user identifier -> display name."""
    return _build_person_map(users, "user")


def build_salesperson_map(salespersons: Iterable[dict[str, Any]]) -> dict[str, str]:
    """Normalized salesperson id/email -> display name."""
    return _build_person_map(salespersons, "salesperson")


@dataclass(frozen=True)
class NameResolver:
    """Read-only lookup tables for one aggregation cycle.

    Build once per cycle with :meth:`from_records`, then call the
    ``resolve_*`` methods for each record.
    """

    customer_map: Mapping[str, str] = field(default_factory=dict)
    user_map: Mapping[str, str] = field(default_factory=dict)
    salesperson_map: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        customers: Iterable[dict[str, Any]] = (),
        users: Iterable[dict[str, Any]] = (),
        salespersons: Iterable[dict[str, Any]] = (),
    ) -> NameResolver:
        return cls(
            customer_map=MappingProxyType(build_customer_map(customers)),
            user_map=MappingProxyType(build_user_map(users)),
            salesperson_map=MappingProxyType(build_salesperson_map(salespersons)),
        )

    def resolve_user_name(self, raw_id: Any, crm_name: Any = None) -> str:
        """Display name for a creator. Never returns an empty string."""
        name = as_text(crm_name)
        if name:
            return name

        key = normalize_user_key(raw_id)
        if key:
            if key in self.salesperson_map:
                return self.salesperson_map[key]
            if key in self.user_map:
                return self.user_map[key]

        return as_text(raw_id) or UNKNOWN_USER

    def resolve_customer_name(self, customer_id: Any) -> Optional[str]:
        key = as_text(customer_id)
        if not key:
            return None
        return self.customer_map.get(key)
