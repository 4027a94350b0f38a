"""
Mutation coordinator - keeps ledger, customer aggregates and score consistent.

Every create/update/delete runs one sequential chain in a single session:

    Received -> LedgerWritten -> AggregateRefreshed (conditional)
             -> ScoreRecomputed -> EligibilityUpdated -> Persisted

The ledger write is committed before any derived step runs. A failure in a
later step never rolls the write back: aggregates and the score are pure
functions of the ledger and are repaired by the next mutation, an explicit
refresh, or `resync_business`.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vaniga_score.config import settings
from vaniga_score.domain.aggregates import counterparty_key, qualifies_for_rollup, rollup_counterparty
from vaniga_score.domain.eligibility import is_loan_eligible
from vaniga_score.domain.exceptions import ComputationFallbackError, ForbiddenError, InvalidInputError, NotFoundError
from vaniga_score.domain.models import MutationResult, ResyncResult, ScoreResult, TransactionDraft
from vaniga_score.domain.scoring import compute_score
from vaniga_score.domain.validation import validate_draft
from vaniga_score.infrastructure.database.models import Business, CustomerAggregate, LedgerTransaction
from vaniga_score.infrastructure.database.repositories import (
    BusinessRepository,
    CustomerRepository,
    TransactionRepository,
    to_domain,
)
from vaniga_score.infrastructure.observability.logging import log_score_recompute
from vaniga_score.infrastructure.observability.metrics import (
    aggregate_refresh_failure_counter,
    record_score,
    score_recompute_failure_counter,
)
from vaniga_score.utils.date_utils import utcnow, window_start

PATCHABLE_FIELDS = (
    "kind",
    "amount",
    "counterparty_name",
    "description",
    "category",
    "tax_amount",
    "payment_method",
    "occurred_at",
)


def require_business(businesses: BusinessRepository, business_id: uuid.UUID) -> Business:
    """Fetch a business or raise NotFoundError"""
    business = businesses.get_business(business_id)
    if business is None:
        raise NotFoundError(f"Business {business_id} not found")
    return business


class MutationCoordinator:
    """Applies ledger mutations and the derived-state chain that follows them"""

    def __init__(
        self,
        db: Session,
        score_window_days: int | None = None,
        loan_threshold: int | None = None,
        counterparty_match: str | None = None,
    ):
        self.db = db
        self.businesses = BusinessRepository(db)
        self.transactions = TransactionRepository(db)
        self.customers = CustomerRepository(db)
        self.score_window_days = score_window_days or settings.score_window_days
        self.loan_threshold = loan_threshold or settings.loan_eligibility_threshold
        self.counterparty_match = counterparty_match or settings.counterparty_match

    # ------------------------------------------------------------------
    # Business records
    # ------------------------------------------------------------------

    def register_business(self, business_name: str, owner_name: Optional[str] = None) -> Business:
        """Create a business with no transactions (score 300, not eligible)"""
        if not business_name or not business_name.strip():
            raise InvalidInputError("Business name is required")
        business = self.businesses.create_business(business_name.strip(), owner_name)
        self.db.commit()
        return business

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_transaction(self, business_id: uuid.UUID, draft: TransactionDraft) -> MutationResult:
        """
        Record a transaction and bring derived state up to date.

        Raises:
            NotFoundError: business does not exist
            InvalidInputError: missing kind/amount or out-of-domain values (nothing written)
        """
        business = require_business(self.businesses, business_id)
        clean = validate_draft(draft)

        customer_id = self._resolve_customer_id(business_id, clean)
        row = self.transactions.create_transaction(business_id, clean, customer_id)
        self.db.commit()
        transaction = to_domain(row)

        self._refresh_customers([customer_id])
        result = self.recompute_score(business)
        result.transaction = transaction
        return result

    def update_transaction(
        self,
        business_id: uuid.UUID,
        transaction_id: uuid.UUID,
        patch: Dict[str, Any],
    ) -> MutationResult:
        """
        Apply a patch to an owned transaction.

        The merged record is re-validated as a whole. Both the customer the
        transaction was linked to before and the one it is linked to after
        are refreshed, so renaming a counterparty leaves neither stale.
        """
        unknown = set(patch) - set(PATCHABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        business = require_business(self.businesses, business_id)
        row = self._require_owned_transaction(business_id, transaction_id)

        current = to_domain(row)
        merged = TransactionDraft(**{name: patch.get(name, getattr(current, name)) for name in PATCHABLE_FIELDS})
        clean = validate_draft(merged)

        previous_customer_id = row.customer_id
        customer_id = self._resolve_customer_id(business_id, clean)
        self.transactions.replace_fields(row, clean, customer_id)
        self.db.commit()
        transaction = to_domain(row)

        self._refresh_customers([previous_customer_id, customer_id])
        result = self.recompute_score(business)
        result.transaction = transaction
        return result

    def delete_transaction(self, business_id: uuid.UUID, transaction_id: uuid.UUID) -> MutationResult:
        """Remove an owned transaction, then refresh its customer and the score"""
        business = require_business(self.businesses, business_id)
        row = self._require_owned_transaction(business_id, transaction_id)

        # Captured before the row goes away
        customer_id = row.customer_id if qualifies_for_rollup(row.kind, row.counterparty_name) else None

        self.transactions.delete_transaction(row)
        self.db.commit()

        self._refresh_customers([customer_id])
        return self.recompute_score(business)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def score_window(self, business_id: uuid.UUID, as_of: datetime | None = None) -> ScoreResult:
        """Compute (without persisting) the score over the trailing window"""
        as_of = as_of or utcnow()
        rows = self.transactions.get_window(business_id, window_start(as_of, self.score_window_days), as_of)
        return compute_score([to_domain(r) for r in rows], as_of)

    def recompute_score(self, business: Business, as_of: datetime | None = None) -> MutationResult:
        """
        Recompute and persist score + eligibility; the only writer of those fields.

        If the window cannot be read or scored, the last persisted score is
        returned with score_stale=True instead of failing the caller.
        """
        business_id = business.id
        last_score = business.score
        last_eligible = business.loan_eligible

        try:
            result = self.score_window(business_id, as_of)
            eligible = is_loan_eligible(result.score, self.loan_threshold)
            self.businesses.save_score(business, result.score, eligible)
            self.db.commit()
        except (SQLAlchemyError, ComputationFallbackError) as e:
            self.db.rollback()
            score_recompute_failure_counter.inc()
            logging.warning(
                f"Score recompute failed, keeping last persisted score: {e}",
                extra={"business_id": str(business_id), "step": "score_fallback", "score": last_score},
            )
            return MutationResult(updated_score=last_score, loan_eligible=last_eligible, score_stale=True)

        record_score(result.score, eligible)
        log_score_recompute(str(business_id), result, eligible)
        return MutationResult(updated_score=result.score, loan_eligible=eligible)

    def refresh_customer(self, customer: CustomerAggregate) -> CustomerAggregate:
        """Recompute one aggregate from every transaction linked to it (idempotent)"""
        rows = self.transactions.get_transactions_by_customer(customer.id)
        totals = rollup_counterparty(to_domain(r) for r in rows)
        return self.customers.save_totals(customer, totals)

    def refresh_customer_aggregate(self, business_id: uuid.UUID, counterparty_name: str) -> CustomerAggregate:
        """
        Refresh a counterparty's aggregate by name.

        An aggregate that does not exist yet is seeded, with zeroed totals,
        from unlinked transactions carrying the same name key.

        Raises:
            NotFoundError: unknown business, or unknown counterparty with no
                transactions to seed it
        """
        require_business(self.businesses, business_id)
        if not counterparty_name or not counterparty_name.strip():
            raise InvalidInputError("Counterparty name is required")

        name = counterparty_name.strip()
        name_key = counterparty_key(name, self.counterparty_match)
        customer = self.customers.get_by_name_key(business_id, name_key)

        if customer is None:
            seeds = [
                row
                for row in self._qualifying_rows(business_id)
                if counterparty_key(row.counterparty_name, self.counterparty_match) == name_key
            ]
            if not seeds:
                raise NotFoundError(f"Customer '{name}' not found")
            customer = self.customers.get_or_create_customer(business_id, name, name_key)
            for row in seeds:
                row.customer_id = customer.id
            self.db.flush()

        customer = self.refresh_customer(customer)
        self.db.commit()
        return customer

    def resync_business(self, business_id: uuid.UUID) -> ResyncResult:
        """
        Rebuild every derived value for a business from its ledger.

        Re-links transactions to customers under the current match mode,
        refreshes all aggregates, then recomputes and persists the score.
        """
        business = require_business(self.businesses, business_id)

        relinked = 0
        for row in self.transactions.get_transactions_by_business(business_id):
            clean = TransactionDraft(kind=row.kind, counterparty_name=row.counterparty_name)
            customer_id = self._resolve_customer_id(business_id, clean)
            if row.customer_id != customer_id:
                row.customer_id = customer_id
                relinked += 1
        self.db.flush()

        refreshed = [self.refresh_customer(c) for c in self.customers.get_customers_by_business(business_id)]
        self.db.commit()

        outcome = self.recompute_score(business)
        if outcome.score_stale:
            raise ComputationFallbackError(f"Score recompute failed during resync of business {business_id}")

        logging.info(
            "Business resynced",
            extra={
                "business_id": str(business_id),
                "step": "resync_complete",
                "relinked_transactions": relinked,
                "refreshed_customers": len(refreshed),
                "score": outcome.updated_score,
            },
        )
        return ResyncResult(
            business_id=business_id,
            relinked_transactions=relinked,
            refreshed_customers=[c.name for c in refreshed],
            score=outcome.updated_score,
            loan_eligible=outcome.loan_eligible,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_owned_transaction(self, business_id: uuid.UUID, transaction_id: uuid.UUID) -> LedgerTransaction:
        row = self.transactions.get_transaction(transaction_id)
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if row.business_id != business_id:
            raise ForbiddenError(f"Transaction {transaction_id} belongs to another business")
        return row

    def _resolve_customer_id(self, business_id: uuid.UUID, draft: TransactionDraft) -> Optional[uuid.UUID]:
        """Normalize-and-lookup-or-create the customer a qualifying transaction belongs to"""
        if not qualifies_for_rollup(draft.kind, draft.counterparty_name):
            return None
        name_key = counterparty_key(draft.counterparty_name, self.counterparty_match)
        return self.customers.get_or_create_customer(business_id, draft.counterparty_name, name_key).id

    def _qualifying_rows(self, business_id: uuid.UUID) -> List[LedgerTransaction]:
        return [
            row
            for row in self.transactions.get_transactions_by_business(business_id)
            if qualifies_for_rollup(row.kind, row.counterparty_name)
        ]

    def _refresh_customers(self, customer_ids: Iterable[Optional[uuid.UUID]]) -> None:
        """Refresh each linked customer; failures are logged, never raised"""
        seen = set()
        for customer_id in customer_ids:
            if customer_id is None or customer_id in seen:
                continue
            seen.add(customer_id)
            try:
                customer = self.customers.get_customer(customer_id)
                if customer is not None:
                    self.refresh_customer(customer)
                    self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                aggregate_refresh_failure_counter.inc()
                logging.warning(
                    f"Customer refresh failed: {e}",
                    extra={"customer_id": str(customer_id), "step": "aggregate_refresh_failed"},
                )
