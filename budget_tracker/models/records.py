"""
Record Models for Budget Tracker

Budgets and expenses are stored as independent collections. Every record
carries an identity and an owner, and nothing else is inspected by the
storage layer.

DESIGN DECISION: Field names are snake_case in Python and camelCase in
stored documents and HTTP bodies (id, userId, budgetId, startDate...).
The owner field is stored as "userId" because that is the partition key
path of the document containers.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return str(uuid4())


Money = Annotated[Decimal, Field(ge=0, decimal_places=2)]


# =============================================================================
# BASE RECORD
# =============================================================================

class OwnedRecord(BaseModel):
    """
    Base for everything a RecordStore can hold.

    Subclassing this is the "has identity and owner" capability:
    stores are generic over OwnedRecord and read `id` / `owner_id`
    directly, without looking fields up by name per call.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    # Identity
    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        description="Opaque unique record ID"
    )
    owner_id: str = Field(
        default="",
        alias="userId",
        description="Identity of the owning caller (partition key)"
    )

    # Set once at creation, never updated
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the record was created (UTC)"
    )

    @classmethod
    def from_payload(
        cls,
        payload: BaseModel,
        *,
        owner_id: str,
        record_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        """
        Build a record from client-supplied attributes.

        Identity, owner and creation time are never taken from the client.
        Anything the payload omits falls back to the model default, so
        building an update this way is a full replace.
        """
        data: dict[str, Any] = payload.model_dump()
        data["owner_id"] = owner_id
        if record_id is not None:
            data["id"] = record_id
        if created_at is not None:
            data["created_at"] = created_at
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON document shape stored by the backends."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]):
        """Parse a stored document. Backend metadata fields are ignored."""
        return cls.model_validate(document)


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetPayload(BaseModel):
    """Budget attributes accepted from clients."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Budget name"
    )
    amount: Money = Field(
        ...,
        description="Planned amount"
    )
    spent: Money = Field(
        default=Decimal("0"),
        description="Amount spent so far"
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100
    )
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_period(self):
        """End of the budget period cannot precede its start."""
        if self.start_date and self.end_date:
            if self.end_date < self.start_date:
                raise ValueError("Budget end date cannot be before start date")
        return self


class Budget(OwnedRecord, BudgetPayload):
    """
    A spending plan owned by one user.

    `updated_at` is refreshed on every successful update.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last update timestamp"
    )


# =============================================================================
# EXPENSES
# =============================================================================

class ExpensePayload(BaseModel):
    """Expense attributes accepted from clients."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    # Not checked against the budgets collection; dangling ids are allowed
    budget_id: Optional[str] = None
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the money was spent on"
    )
    amount: Money = Field(
        ...,
        description="Amount spent"
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100
    )
    date: datetime = Field(
        default_factory=utc_now,
        description="When the expense happened"
    )


class Expense(OwnedRecord, ExpensePayload):
    """A single expense owned by one user."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )
