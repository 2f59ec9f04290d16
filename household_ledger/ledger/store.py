"""
Ledger Store

The single authoritative in-process store for accounts, transactions,
categories, members, loans and income allocations.

GUARANTEES:
- Every write is all-or-nothing. A mutation is applied to a private copy
  of the state, the copy is persisted, and only then does it become the
  live state. A validation, not-found or persistence failure leaves the
  live state exactly as it was.
- Account balances move only with transaction add/update/delete and always
  reflect the signed effect of every transaction on the account.
- Loans never touch balances.
- Exactly one LedgerEvent is emitted per successful mutation.

Writers are serialized by a re-entrant lock. Readers never lock: the live
state is replaced wholesale on commit, so a reader always sees one
consistent version. Entity models are frozen, so nothing a reader gets
back can change the live state.
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterator, Optional, TypeVar
from uuid import UUID, uuid4

from household_ledger.allocation import AllocationShare, allocate, total_percentage
from household_ledger.audit import AuditLogger
from household_ledger.errors import (
    AccountNotFoundError,
    AllocationNotFoundError,
    CategoryNotFoundError,
    LedgerError,
    LoanNotFoundError,
    MemberNotFoundError,
    NotFoundError,
    PersistenceError,
    TransactionNotFoundError,
    ValidationFailedError,
)
from household_ledger.events import EventSink, NullEventSink
from household_ledger.models.events import LedgerEvent, LedgerEventKind
from household_ledger.models.ledger import (
    Account,
    AccountKind,
    Category,
    CategoryKind,
    IncomeAllocation,
    LedgerRecord,
    Loan,
    LoanType,
    Member,
    Transaction,
    TransactionType,
    TransferDirection,
    utc_now,
)
from household_ledger.models.snapshot import BackupSnapshot, LedgerCollections
from household_ledger.services.storage import LedgerPersistence
from household_ledger.validation import LedgerValidator

T = TypeVar("T")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _in_range(value: datetime, date_from: Optional[datetime], date_to: Optional[datetime]) -> bool:
    if date_from is not None and value < date_from:
        return False
    if date_to is not None and value > date_to:
        return False
    return True


def _find_index(items: list, entity_id: UUID, error_cls: type[NotFoundError]) -> int:
    for index, item in enumerate(items):
        if item.id == entity_id:
            return index
    raise error_cls(entity_id)


def _find(items: list[T], entity_id: UUID, error_cls: type[NotFoundError]) -> T:
    return items[_find_index(items, entity_id, error_cls)]


def _fields(**fields: Any) -> dict[str, Any]:
    """Drop unset optionals so model defaults (ids, timestamps) apply."""
    return {k: v for k, v in fields.items() if v is not None}


class LedgerStore:
    """
    Ledger store with atomic balance bookkeeping.

    Build it with LedgerStore.open() to load what is already persisted,
    or construct it directly for an empty ledger.
    """

    def __init__(
        self,
        persistence: LedgerPersistence,
        event_sink: Optional[EventSink] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._persistence = persistence
        self._events = event_sink or NullEventSink()
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or LedgerValidator()
        self._lock = threading.RLock()
        self._state = LedgerCollections()

    @classmethod
    def open(
        cls,
        persistence: LedgerPersistence,
        event_sink: Optional[EventSink] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "LedgerStore":
        """Create a store and load the persisted collections into it."""
        store = cls(persistence, event_sink=event_sink, audit_logger=audit_logger)
        store.reload()
        return store

    def reload(self) -> None:
        """
        Replace the live state with what is persisted.

        Raises:
            DecodeError: If a persisted blob is malformed
            PersistenceError: If storage cannot be read
        """
        with self._lock:
            try:
                state = self._persistence.load()
            except LedgerError as e:
                self._audit.log_error(type(e).__name__, str(e), {"operation": "reload"})
                raise
            self._state = state
        self._audit.log_loaded(self.counts())

    # =========================================================================
    # Write plumbing
    # =========================================================================

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the writer lock, e.g. while a full snapshot is exported."""
        with self._lock:
            yield

    @contextmanager
    def _mutation(self, operation: str, entity_id: Optional[UUID] = None) -> Iterator[LedgerCollections]:
        """
        Yield a private copy of the state; persist and commit it on exit.

        Nothing reaches storage if the body raises, and nothing becomes
        visible if storage fails.
        """
        with self._lock:
            working = self._state.model_copy(deep=True)
            try:
                yield working
            except LedgerError as e:
                self._audit.log_rejected(operation, e, entity_id)
                raise
            except Exception as e:
                self._audit.log_error(type(e).__name__, str(e), {"operation": operation})
                raise

            try:
                self._persistence.save(working)
            except PersistenceError as e:
                self._audit.log_persistence_failed(operation, str(e))
                raise
            self._state = working

    def _emit(
        self,
        kind: LedgerEventKind,
        operation: str,
        entity_ids: list[UUID],
        **details: Any,
    ) -> None:
        self._events.emit(LedgerEvent(
            kind=kind,
            operation=operation,
            entity_ids=entity_ids,
            details=details,
        ))

    def _apply_delta(
        self,
        state: LedgerCollections,
        account_id: UUID,
        delta: Decimal,
        transaction_id: UUID,
        adjustments: list[tuple[UUID, Decimal, UUID]],
        required: bool = True,
    ) -> None:
        """
        Move an account balance by delta.

        With required=False a missing account is skipped: reversing the
        effect of a transaction whose account was deleted has nothing to fix.
        """
        if not required and not any(a.id == account_id for a in state.accounts):
            return
        index = _find_index(state.accounts, account_id, AccountNotFoundError)
        account = state.accounts[index]
        state.accounts[index] = account.model_copy(update={"balance": account.balance + delta})
        adjustments.append((account_id, delta, transaction_id))

    def _log_adjustments(self, adjustments: list[tuple[UUID, Decimal, UUID]]) -> None:
        balances = {a.id: a.balance for a in self._state.accounts}
        for account_id, delta, transaction_id in adjustments:
            self._audit.log_balance_adjusted(
                account_id=account_id,
                delta=str(delta),
                new_balance=str(balances.get(account_id)),
                transaction_id=transaction_id,
            )

    # =========================================================================
    # Snapshot access
    # =========================================================================

    @property
    def state(self) -> LedgerCollections:
        """The current collections. The lists are copies; the records are frozen."""
        state = self._state
        return LedgerCollections(
            accounts=list(state.accounts),
            transactions=list(state.transactions),
            categories=list(state.categories),
            loans=list(state.loans),
            allocations=list(state.allocations),
            members=list(state.members),
        )

    def counts(self) -> dict[str, int]:
        state = self._state
        return {
            "accounts": len(state.accounts),
            "transactions": len(state.transactions),
            "categories": len(state.categories),
            "loans": len(state.loans),
            "allocations": len(state.allocations),
            "members": len(state.members),
        }

    def snapshot(self) -> BackupSnapshot:
        """A deep copy of the whole ledger, ready for backup."""
        state = self._state.model_copy(deep=True)
        return BackupSnapshot(
            accounts=state.accounts,
            transactions=state.transactions,
            categories=state.categories,
            loans=state.loans,
            allocations=state.allocations,
            members=state.members,
        )

    def replace_snapshot(self, snapshot: BackupSnapshot) -> None:
        """
        Replace every collection with the snapshot's contents.

        Balances are taken from the snapshot as they are; they were
        consistent when the snapshot was made.
        """
        operation = "replace_snapshot"
        with self._mutation(operation) as state:
            restored = snapshot.collections().model_copy(deep=True)
            state.accounts = restored.accounts
            state.transactions = restored.transactions
            state.categories = restored.categories
            state.loans = restored.loans
            state.allocations = restored.allocations
            state.members = restored.members
        self._emit(LedgerEventKind.SNAPSHOT_RESTORED, operation, [], counts=self.counts())

    # =========================================================================
    # Accounts
    # =========================================================================

    def add_account(
        self,
        name: str,
        kind: AccountKind = AccountKind.CASH,
        balance: Decimal = Decimal("0"),
    ) -> Account:
        operation = "add_account"
        with self._mutation(operation) as state:
            account = self._validator.build(Account, name=name, kind=kind, balance=balance)
            state.accounts.append(account)
        self._audit.log_created("account", account.id, account.name)
        self._emit(LedgerEventKind.ACCOUNTS_CHANGED, operation, [account.id])
        return account

    def update_account(self, account: Account) -> Account:
        """
        Replace an account record.

        Setting a different balance here re-bases the account; later
        transaction effects apply on top of it.
        """
        operation = "update_account"
        with self._mutation(operation, account.id) as state:
            index = _find_index(state.accounts, account.id, AccountNotFoundError)
            updated = self._validator.revalidate(account)
            state.accounts[index] = updated
        self._audit.log_updated("account", updated.id, updated.name)
        self._emit(LedgerEventKind.ACCOUNTS_CHANGED, operation, [updated.id])
        return updated

    def delete_account(self, account_id: UUID) -> None:
        """Remove an account. Its transactions and loans are left in place."""
        operation = "delete_account"
        with self._mutation(operation, account_id) as state:
            index = _find_index(state.accounts, account_id, AccountNotFoundError)
            del state.accounts[index]
        self._audit.log_deleted("account", account_id)
        self._emit(LedgerEventKind.ACCOUNTS_CHANGED, operation, [account_id])

    def get_account(self, account_id: UUID) -> Account:
        return _find(self._state.accounts, account_id, AccountNotFoundError)

    def list_accounts(self, kind: Optional[AccountKind] = None) -> list[Account]:
        return [a for a in self._state.accounts if kind is None or a.kind == kind]

    # =========================================================================
    # Categories
    # =========================================================================

    def add_category(
        self,
        name: str,
        kind: CategoryKind,
        icon: Optional[str] = None,
        parent_id: Optional[UUID] = None,
    ) -> Category:
        operation = "add_category"
        with self._mutation(operation) as state:
            category = self._validator.build(
                Category, **_fields(name=name, kind=kind, icon=icon, parent_id=parent_id)
            )
            state.categories.append(category)
        self._audit.log_created("category", category.id, category.name)
        self._emit(LedgerEventKind.CATEGORIES_CHANGED, operation, [category.id])
        return category

    def update_category(self, category: Category) -> Category:
        operation = "update_category"
        with self._mutation(operation, category.id) as state:
            index = _find_index(state.categories, category.id, CategoryNotFoundError)
            updated = self._validator.revalidate(category)
            state.categories[index] = updated
        self._audit.log_updated("category", updated.id, updated.name)
        self._emit(LedgerEventKind.CATEGORIES_CHANGED, operation, [updated.id])
        return updated

    def delete_category(self, category_id: UUID) -> None:
        """Remove a category. Transactions referencing it keep the dangling id."""
        operation = "delete_category"
        with self._mutation(operation, category_id) as state:
            index = _find_index(state.categories, category_id, CategoryNotFoundError)
            del state.categories[index]
        self._audit.log_deleted("category", category_id)
        self._emit(LedgerEventKind.CATEGORIES_CHANGED, operation, [category_id])

    def get_category(self, category_id: UUID) -> Category:
        return _find(self._state.categories, category_id, CategoryNotFoundError)

    def list_categories(
        self,
        kind: Optional[CategoryKind] = None,
        parent_id: Optional[UUID] = None,
        top_level_only: bool = False,
    ) -> list[Category]:
        categories = []
        for category in self._state.categories:
            if kind is not None and category.kind != kind:
                continue
            if parent_id is not None and category.parent_id != parent_id:
                continue
            if top_level_only and category.parent_id is not None:
                continue
            categories.append(category)
        return categories

    # =========================================================================
    # Members
    # =========================================================================

    def add_member(
        self,
        name: str,
        avatar: Optional[str] = None,
        is_active: bool = True,
    ) -> Member:
        operation = "add_member"
        with self._mutation(operation) as state:
            member = self._validator.build(
                Member, **_fields(name=name, avatar=avatar, is_active=is_active)
            )
            state.members.append(member)
        self._audit.log_created("member", member.id, member.name)
        self._emit(LedgerEventKind.MEMBERS_CHANGED, operation, [member.id])
        return member

    def update_member(self, member: Member) -> Member:
        operation = "update_member"
        with self._mutation(operation, member.id) as state:
            index = _find_index(state.members, member.id, MemberNotFoundError)
            updated = self._validator.revalidate(member)
            state.members[index] = updated
        self._audit.log_updated("member", updated.id, updated.name)
        self._emit(LedgerEventKind.MEMBERS_CHANGED, operation, [updated.id])
        return updated

    def toggle_member_active(self, member_id: UUID) -> Member:
        with self._lock:
            member = self.get_member(member_id)
            return self.update_member(member.model_copy(update={"is_active": not member.is_active}))

    def delete_member(self, member_id: UUID) -> None:
        operation = "delete_member"
        with self._mutation(operation, member_id) as state:
            index = _find_index(state.members, member_id, MemberNotFoundError)
            del state.members[index]
        self._audit.log_deleted("member", member_id)
        self._emit(LedgerEventKind.MEMBERS_CHANGED, operation, [member_id])

    def get_member(self, member_id: UUID) -> Member:
        return _find(self._state.members, member_id, MemberNotFoundError)

    def list_members(self, active: Optional[bool] = None) -> list[Member]:
        return [m for m in self._state.members if active is None or m.is_active == active]

    # =========================================================================
    # Transactions
    # =========================================================================

    def add_transaction(
        self,
        amount: Decimal,
        type: TransactionType,
        account_id: UUID,
        category_id: Optional[UUID] = None,
        member_id: Optional[UUID] = None,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
        transfer_direction: Optional[TransferDirection] = None,
        transfer_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a transaction and apply its signed effect to the account.

        Raises:
            ValidationFailedError: Bad amount, missing category, kind mismatch
            AccountNotFoundError: The account does not exist
            PersistenceError: The durable write failed (nothing changed)
        """
        operation = "add_transaction"
        adjustments: list[tuple[UUID, Decimal, UUID]] = []
        with self._mutation(operation) as state:
            transaction = self._validator.build(Transaction, **_fields(
                amount=amount,
                type=type,
                account_id=account_id,
                category_id=category_id,
                member_id=member_id,
                date=date,
                note=note,
                transfer_direction=transfer_direction,
                transfer_id=transfer_id,
            ))
            self._validator.check_category_kind(transaction, state.categories)
            self._apply_delta(state, transaction.account_id, transaction.signed_amount, transaction.id, adjustments)
            state.transactions.append(transaction)
        self._audit.log_created("transaction", transaction.id, f"{transaction.type.value} {transaction.amount}")
        self._log_adjustments(adjustments)
        self._emit(
            LedgerEventKind.TRANSACTIONS_CHANGED,
            operation,
            [transaction.id],
            account_ids=[str(transaction.account_id)],
        )
        return transaction

    def update_transaction(self, updated: Transaction) -> Transaction:
        """
        Replace a transaction, moving its balance effect as needed.

        The old effect is reversed on the old account and the new effect is
        applied to the new account (which may differ) in one atomic step.

        Raises:
            TransactionNotFoundError: No transaction with that id
            AccountNotFoundError: The new account does not exist
            ValidationFailedError: The updated record is invalid
        """
        operation = "update_transaction"
        adjustments: list[tuple[UUID, Decimal, UUID]] = []
        with self._mutation(operation, updated.id) as state:
            index = _find_index(state.transactions, updated.id, TransactionNotFoundError)
            old = state.transactions[index]
            new = self._validator.revalidate(updated)
            self._validator.check_category_kind(new, state.categories)

            self._apply_delta(state, old.account_id, -old.signed_amount, old.id, adjustments, required=False)
            self._apply_delta(state, new.account_id, new.signed_amount, new.id, adjustments)
            state.transactions[index] = new
        self._audit.log_updated("transaction", new.id, f"{new.type.value} {new.amount}")
        self._log_adjustments(adjustments)
        self._emit(
            LedgerEventKind.TRANSACTIONS_CHANGED,
            operation,
            [new.id],
            account_ids=sorted({str(old.account_id), str(new.account_id)}),
        )
        return new

    def delete_transaction(self, transaction_id: UUID) -> Transaction:
        """
        Remove a transaction and reverse its balance effect.

        Returns the removed record.
        """
        operation = "delete_transaction"
        adjustments: list[tuple[UUID, Decimal, UUID]] = []
        with self._mutation(operation, transaction_id) as state:
            index = _find_index(state.transactions, transaction_id, TransactionNotFoundError)
            removed = state.transactions[index]
            self._apply_delta(
                state, removed.account_id, -removed.signed_amount, removed.id, adjustments, required=False
            )
            del state.transactions[index]
        self._audit.log_deleted("transaction", transaction_id)
        self._log_adjustments(adjustments)
        self._emit(
            LedgerEventKind.TRANSACTIONS_CHANGED,
            operation,
            [transaction_id],
            account_ids=[str(removed.account_id)],
        )
        return removed

    def add_transfer(
        self,
        amount: Decimal,
        from_account_id: UUID,
        to_account_id: UUID,
        member_id: Optional[UUID] = None,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> tuple[Transaction, Transaction]:
        """
        Move money between two accounts.

        Stored as two TRANSFER rows sharing a transfer_id: an OUT leg on the
        source and an IN leg on the destination. Both legs are written in
        one commit.
        """
        operation = "add_transfer"
        transfer_id = uuid4()
        adjustments: list[tuple[UUID, Decimal, UUID]] = []
        with self._mutation(operation) as state:
            self._validator.check_transfer_accounts(from_account_id, to_account_id)
            date = date or utc_now()
            legs = []
            for account_id, direction in (
                (from_account_id, TransferDirection.OUT),
                (to_account_id, TransferDirection.IN),
            ):
                leg = self._validator.build(Transaction, **_fields(
                    amount=amount,
                    type=TransactionType.TRANSFER,
                    account_id=account_id,
                    member_id=member_id,
                    date=date,
                    note=note,
                    transfer_direction=direction,
                    transfer_id=transfer_id,
                ))
                self._apply_delta(state, leg.account_id, leg.signed_amount, leg.id, adjustments)
                state.transactions.append(leg)
                legs.append(leg)
        out_leg, in_leg = legs
        self._audit.log_transfer(transfer_id, str(out_leg.amount), from_account_id, to_account_id)
        self._log_adjustments(adjustments)
        self._emit(
            LedgerEventKind.TRANSACTIONS_CHANGED,
            operation,
            [out_leg.id, in_leg.id],
            account_ids=[str(from_account_id), str(to_account_id)],
            transfer_id=str(transfer_id),
        )
        return out_leg, in_leg

    def record_allocated_income(
        self,
        amount: Decimal,
        category_id: UUID,
        member_id: Optional[UUID] = None,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> list[Transaction]:
        """
        Split an income across accounts by the stored allocation weights.

        One income transaction is recorded per allocation share, all in one
        commit. Returns an empty list (and writes nothing) when no share
        is positive.
        """
        operation = "record_allocated_income"
        if amount <= 0:
            error = ValidationFailedError(f"Income amount must be positive, got {amount}", field="amount")
            self._audit.log_rejected(operation, error)
            raise error

        adjustments: list[tuple[UUID, Decimal, UUID]] = []
        with self._lock:
            # shares come from the same state version the commit builds on
            shares: list[AllocationShare] = allocate(amount, self._state.allocations)
            if not shares:
                return []

            with self._mutation(operation) as state:
                date = date or utc_now()
                created = []
                for share in shares:
                    transaction = self._validator.build(Transaction, **_fields(
                        amount=share.amount,
                        type=TransactionType.INCOME,
                        account_id=share.account_id,
                        category_id=category_id,
                        member_id=member_id,
                        date=date,
                        note=note,
                    ))
                    self._validator.check_category_kind(transaction, state.categories)
                    self._apply_delta(state, transaction.account_id, transaction.signed_amount, transaction.id, adjustments)
                    state.transactions.append(transaction)
                    created.append(transaction)
        self._audit.log_income_allocated(
            str(amount),
            [{"account_id": str(s.account_id), "amount": str(s.amount)} for s in shares],
        )
        self._log_adjustments(adjustments)
        self._emit(
            LedgerEventKind.TRANSACTIONS_CHANGED,
            operation,
            [t.id for t in created],
            account_ids=[str(s.account_id) for s in shares],
        )
        return created

    def get_transaction(self, transaction_id: UUID) -> Transaction:
        return _find(self._state.transactions, transaction_id, TransactionNotFoundError)

    def list_transactions(
        self,
        account_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
        member_id: Optional[UUID] = None,
        type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        newest_first: bool = False,
        category_kind: Optional[CategoryKind] = None,
    ) -> list[Transaction]:
        """
        Filter transactions. Results are in insertion order unless newest_first.

        category_kind matches through the category a transaction points
        at, so transfer legs and transactions with a deleted category never
        match it.
        """
        state = self._state
        date_from, date_to = _as_utc(date_from), _as_utc(date_to)
        kind_ids = None
        if category_kind is not None:
            kind_ids = {c.id for c in state.categories if c.kind == category_kind}
        transactions = []
        for transaction in state.transactions:
            if kind_ids is not None and transaction.category_id not in kind_ids:
                continue
            if account_id is not None and transaction.account_id != account_id:
                continue
            if category_id is not None and transaction.category_id != category_id:
                continue
            if member_id is not None and transaction.member_id != member_id:
                continue
            if type is not None and transaction.type != type:
                continue
            if not _in_range(transaction.date, date_from, date_to):
                continue
            transactions.append(transaction)
        if newest_first:
            transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    # =========================================================================
    # Loans
    # =========================================================================

    def add_loan(
        self,
        type: LoanType,
        amount: Decimal,
        account_id: UUID,
        counterparty: str,
        member_id: Optional[UUID] = None,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
        is_settled: bool = False,
    ) -> Loan:
        """Record a loan. Account balances are not touched."""
        operation = "add_loan"
        with self._mutation(operation) as state:
            loan = self._validator.build(Loan, **_fields(
                type=type,
                amount=amount,
                account_id=account_id,
                counterparty=counterparty,
                member_id=member_id,
                date=date,
                note=note,
                is_settled=is_settled,
            ))
            state.loans.append(loan)
        self._audit.log_created("loan", loan.id, f"{loan.type.value} {loan.amount} ({loan.counterparty})")
        self._emit(LedgerEventKind.LOANS_CHANGED, operation, [loan.id])
        return loan

    def update_loan(self, loan: Loan) -> Loan:
        operation = "update_loan"
        with self._mutation(operation, loan.id) as state:
            index = _find_index(state.loans, loan.id, LoanNotFoundError)
            updated = self._validator.revalidate(loan)
            state.loans[index] = updated
        self._audit.log_updated("loan", updated.id, f"{updated.type.value} {updated.amount}")
        self._emit(LedgerEventKind.LOANS_CHANGED, operation, [updated.id])
        return updated

    def toggle_loan_settled(self, loan_id: UUID) -> Loan:
        with self._lock:
            loan = self.get_loan(loan_id)
            return self.update_loan(loan.model_copy(update={"is_settled": not loan.is_settled}))

    def delete_loan(self, loan_id: UUID) -> None:
        operation = "delete_loan"
        with self._mutation(operation, loan_id) as state:
            index = _find_index(state.loans, loan_id, LoanNotFoundError)
            del state.loans[index]
        self._audit.log_deleted("loan", loan_id)
        self._emit(LedgerEventKind.LOANS_CHANGED, operation, [loan_id])

    def get_loan(self, loan_id: UUID) -> Loan:
        return _find(self._state.loans, loan_id, LoanNotFoundError)

    def list_loans(
        self,
        type: Optional[LoanType] = None,
        settled: Optional[bool] = None,
        account_id: Optional[UUID] = None,
        member_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        newest_first: bool = False,
    ) -> list[Loan]:
        date_from, date_to = _as_utc(date_from), _as_utc(date_to)
        loans = []
        for loan in self._state.loans:
            if type is not None and loan.type != type:
                continue
            if settled is not None and loan.is_settled != settled:
                continue
            if account_id is not None and loan.account_id != account_id:
                continue
            if member_id is not None and loan.member_id != member_id:
                continue
            if not _in_range(loan.date, date_from, date_to):
                continue
            loans.append(loan)
        if newest_first:
            loans.sort(key=lambda loan: loan.date, reverse=True)
        return loans

    # =========================================================================
    # Income allocations
    # =========================================================================

    def add_allocation(self, account_id: UUID, percentage: int) -> IncomeAllocation:
        """Add an allocation row. The 100% total is not enforced."""
        operation = "add_allocation"
        with self._mutation(operation) as state:
            allocation = self._validator.build(
                IncomeAllocation, account_id=account_id, percentage=percentage
            )
            state.allocations.append(allocation)
        self._audit.log_created("allocation", allocation.id, f"{allocation.percentage}%")
        self._emit(LedgerEventKind.ALLOCATIONS_CHANGED, operation, [allocation.id])
        return allocation

    def update_allocation(self, allocation: IncomeAllocation) -> IncomeAllocation:
        """Replace an allocation row and stamp its last_modified time."""
        operation = "update_allocation"
        with self._mutation(operation, allocation.id) as state:
            index = _find_index(state.allocations, allocation.id, AllocationNotFoundError)
            updated = self._validator.revalidate(
                allocation.model_copy(update={"last_modified": utc_now()})
            )
            state.allocations[index] = updated
        self._audit.log_updated("allocation", updated.id, f"{updated.percentage}%")
        self._emit(LedgerEventKind.ALLOCATIONS_CHANGED, operation, [updated.id])
        return updated

    def delete_allocation(self, allocation_id: UUID) -> None:
        operation = "delete_allocation"
        with self._mutation(operation, allocation_id) as state:
            index = _find_index(state.allocations, allocation_id, AllocationNotFoundError)
            del state.allocations[index]
        self._audit.log_deleted("allocation", allocation_id)
        self._emit(LedgerEventKind.ALLOCATIONS_CHANGED, operation, [allocation_id])

    def set_allocation_percentage(self, account_id: UUID, percentage: int) -> Optional[IncomeAllocation]:
        """
        Set an account's share of incoming income.

        Creates the row lazily on a non-zero percentage, updates it in place
        otherwise, and deletes it when set to zero. Returns the resulting
        row, or None when there is none.
        """
        with self._lock:
            existing = self.get_allocation_for_account(account_id)
            if existing is None:
                if percentage == 0:
                    return None
                return self.add_allocation(account_id, percentage)
            if percentage == 0:
                self.delete_allocation(existing.id)
                return None
            return self.update_allocation(existing.model_copy(update={"percentage": percentage}))

    def get_allocation(self, allocation_id: UUID) -> IncomeAllocation:
        return _find(self._state.allocations, allocation_id, AllocationNotFoundError)

    def get_allocation_for_account(self, account_id: UUID) -> Optional[IncomeAllocation]:
        return next((a for a in self._state.allocations if a.account_id == account_id), None)

    def list_allocations(self, account_id: Optional[UUID] = None) -> list[IncomeAllocation]:
        return [a for a in self._state.allocations if account_id is None or a.account_id == account_id]

    def total_allocation_percentage(self) -> int:
        return total_percentage(self._state.allocations)

    # =========================================================================
    # Combined feed
    # =========================================================================

    def ledger_records(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        member_id: Optional[UUID] = None,
        newest_first: bool = True,
    ) -> list[LedgerRecord]:
        """Transactions and loans together, ordered by date."""
        state = self._state
        date_from, date_to = _as_utc(date_from), _as_utc(date_to)
        records: list[LedgerRecord] = [
            record
            for record in [*state.transactions, *state.loans]
            if _in_range(record.date, date_from, date_to)
            and (member_id is None or record.member_id == member_id)
        ]
        records.sort(key=lambda r: r.date, reverse=newest_first)
        return records
