"""Entity descriptors for the records stored under a family member.

Each :class:`EntityKind` maps to one :class:`EntityDescriptor` that declares
the ordered column list, which columns are sensitive (encrypted at rest) and
which are numeric.  The store, the encryption policy and the import/export
engine are all driven from :data:`DESCRIPTORS`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EntityKind(StrEnum):
    """Categories of records held under a family member.

    Values double as table names and as keys in the export document.
    """

    DOCUMENTS = "documents"
    ACCOUNTS = "accounts"
    INSURANCES_LOANS = "insurances_loans"
    LOCKERS = "lockers"
    PROPERTIES = "properties"


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityDescriptor:
    """Declarative description of one record kind."""

    kind: EntityKind
    fields: tuple[str, ...]
    required: str | None = None
    sensitive: frozenset[str] = field(default_factory=frozenset)
    numeric: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        unknown = (self.sensitive | self.numeric) - set(self.fields)
        if unknown:
            raise ValueError(f"{self.kind}: undeclared fields {sorted(unknown)}")
        if self.sensitive & self.numeric:
            raise ValueError(f"{self.kind}: numeric fields cannot be encrypted")

    @property
    def table(self) -> str:
        """Name of the backing table."""
        return self.kind.value

    def is_numeric(self, name: str) -> bool:
        return name in self.numeric


DESCRIPTORS: dict[EntityKind, EntityDescriptor] = {
    EntityKind.DOCUMENTS: EntityDescriptor(
        kind=EntityKind.DOCUMENTS,
        fields=(
            "type",
            "number",
            "issue_date",
            "expiry_date",
            "authority",
            "file_ref",
            "notes",
        ),
        required="type",
        sensitive=frozenset({"number"}),
    ),
    EntityKind.ACCOUNTS: EntityDescriptor(
        kind=EntityKind.ACCOUNTS,
        fields=(
            "type",
            "institution",
            "branch",
            "account_number",
            "nickname",
            "holder_type",
            "joint_holders",
            "ifsc",
            "open_date",
            "maturity_date",
            "value",
            "nominee",
            "notes",
        ),
        required="type",
        sensitive=frozenset({"account_number"}),
        numeric=frozenset({"value"}),
    ),
    EntityKind.INSURANCES_LOANS: EntityDescriptor(
        kind=EntityKind.INSURANCES_LOANS,
        fields=(
            "category",
            "company",
            "policy_loan_number",
            "product_name",
            "amount",
            "premium_emi",
            "frequency",
            "start_date",
            "end_date",
            "nominee",
            "linked_asset",
            "status",
            "notes",
        ),
        required="category",
        sensitive=frozenset({"policy_loan_number"}),
        numeric=frozenset({"amount", "premium_emi"}),
    ),
    EntityKind.LOCKERS: EntityDescriptor(
        kind=EntityKind.LOCKERS,
        fields=(
            "bank_name",
            "branch",
            "locker_number",
            "joint_holders",
            "nominee",
            "notes",
        ),
        sensitive=frozenset({"locker_number"}),
    ),
    EntityKind.PROPERTIES: EntityDescriptor(
        kind=EntityKind.PROPERTIES,
        fields=(
            "title",
            "address",
            "city",
            "state",
            "property_type",
            "linked_docs",
            "ownership_type",
            "co_owners",
            "notes",
        ),
        sensitive=frozenset({"address"}),
    ),
}

MEMBER_FIELDS: tuple[str, ...] = ("name", "relationship", "dob", "notes")


def resolve_kind(kind: EntityKind | str) -> EntityKind | None:
    """Return the :class:`EntityKind` for *kind*, or ``None`` if unknown.

    Accepts the enum itself, its string value, or the camel-cased
    ``insuranceLoans`` spelling used by some clients.
    """
    if isinstance(kind, EntityKind):
        return kind
    if not isinstance(kind, str):
        return None
    normalized = "insurances_loans" if kind in ("insuranceLoans", "insurances-loans") else kind
    try:
        return EntityKind(normalized)
    except ValueError:
        return None
