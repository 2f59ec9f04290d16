"""
Ledger Input Validation

Validation happens in two stages:

STAGE 1 - SCHEMA VALIDATION:
- Types, required fields, positive amounts, non-empty names
- Delegated to the pydantic models

STAGE 2 - LEDGER VALIDATION:
- Checks that need the current ledger contents
- A transaction's category kind must match its type
- A transfer must move money between two different accounts

Both stages report failures as ValidationFailedError. Validation never
silently fixes input.
"""

from typing import Any, Iterable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from household_ledger.errors import ValidationFailedError
from household_ledger.models.ledger import (
    Category,
    CategoryKind,
    Transaction,
    TransactionType,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


_KIND_FOR_TYPE = {
    TransactionType.INCOME: CategoryKind.INCOME,
    TransactionType.EXPENSE: CategoryKind.EXPENSE,
}


def _first_error(error: ValidationError) -> tuple[str, Optional[str]]:
    details = error.errors()
    if not details:
        return str(error), None
    first = details[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", str(error))
    if field:
        message = f"{field}: {message}"
    return message, field


class LedgerValidator:
    """Validates ledger input before the store applies it."""

    def build(self, model_cls: type[ModelT], **fields: Any) -> ModelT:
        """
        Stage 1: construct a model from raw fields.

        Raises:
            ValidationFailedError: If the fields do not satisfy the schema
        """
        try:
            return model_cls(**fields)
        except ValidationError as e:
            message, field = _first_error(e)
            raise ValidationFailedError(
                f"Invalid {model_cls.__name__.lower()}: {message}",
                field=field,
            ) from e

    def revalidate(self, model: ModelT) -> ModelT:
        """
        Stage 1 for models built elsewhere (possibly via model_copy,
        which skips validation).
        """
        return self.build(type(model), **model.model_dump())

    def check_category_kind(
        self,
        transaction: Transaction,
        categories: Iterable[Category],
    ) -> None:
        """
        Stage 2: the category kind must match the transaction type.

        A category that is not in the ledger is tolerated, matching the
        no-referential-integrity rule for categories.
        """
        expected = _KIND_FOR_TYPE.get(transaction.type)
        if expected is None or transaction.category_id is None:
            return

        category = next((c for c in categories if c.id == transaction.category_id), None)
        if category is not None and category.kind != expected:
            raise ValidationFailedError(
                f"{transaction.type.value.capitalize()} transaction cannot use "
                f"{category.kind.value} category '{category.name}'",
                field="category_id",
            )

    def check_transfer_accounts(self, from_account_id: UUID, to_account_id: UUID) -> None:
        if from_account_id == to_account_id:
            raise ValidationFailedError(
                "A transfer needs two different accounts",
                field="to_account_id",
            )
