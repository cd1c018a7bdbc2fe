"""Transaction categorization: learned mappings first, then a rule cascade.

Public API:
    - :func:`apply_categorization_rules`: pure, ordered keyword rules
    - :class:`Categorizer`: database-backed learned mappings with a
      process-wide read-through cache, plus learning and bulk recategorization

Categorization is total: every description gets a label, ``"Shopping"`` when
nothing else applies. Rule order matters because keyword groups overlap (a
"ZELLE PAYMENT" is a P2P transfer, not a credit card payment, only because
the card-payment rule requires card phrasing).
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from decimal import Decimal

from ledger_db.client import session_scope
from ledger_db.models.ledger import Account, LedgerTransaction, MerchantCategoryMapping
from sqlalchemy import String, func, literal, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .categories import BaseCategory, normalize_name, validate_name
from .config import DEFAULT_EMPLOYER_NAMES, DEFAULT_OWNER_NAMES
from .logging_setup import get_logger
from .models import MAX_RECATEGORIZE_ERRORS, RecategorizeResult

logger = get_logger("statement_ingest.categorize")

type Amount = Decimal | float | int | None

# ---- Rule vocabulary ---------------------------------------------------------

_CARD_PAYMENT_QUALIFIERS = ("credit card", "autopay", "minimum payment", "cc payment")
_CARD_ISSUERS = ("discover", "citi", "amex")
_CARD_PAYMENT_PHRASES = ("credit card payment", "cc autopay")

_TRANSFER_KEYWORDS = (
    "transfer",
    "tfrfrom",
    "tfrto",
    "internal transfer",
    "account transfer",
    "online transfer",
    "external transfer",
    "wire transfer",
    "ach transfer",
)

_P2P_KEYWORDS = ("venmo", "cashapp", "paypal transfer", "apple cash", "google pay send")
_INVESTMENT_KEYWORDS = ("robinhood", "apple saving", "vanguard", "fidelity", "schwab")

# Evaluated in this order; first group with a hit wins.
_EXPENSE_GROUPS: tuple[tuple[BaseCategory, tuple[str, ...]], ...] = (
    (
        BaseCategory.FOOD_AND_DINING,
        (
            "restaurant",
            "cafe",
            "coffee",
            "mcdonald",
            "burger",
            "pizza",
            "starbucks",
            "food",
            "dining",
            "bar ",
            "pub ",
            "grocery",
            "supermarket",
            "safeway",
            "kroger",
        ),
    ),
    (
        BaseCategory.TRANSPORTATION,
        (
            "gas ",
            "fuel",
            "uber",
            "lyft",
            "taxi",
            "parking",
            "metro",
            "transit",
            "airline",
            "car wash",
            "auto ",
        ),
    ),
    (
        BaseCategory.SHOPPING,
        (
            "amazon",
            "walmart",
            "target",
            "mall ",
            "store",
            "shop",
            "retail",
            "clothing",
            "fashion",
        ),
    ),
    (
        BaseCategory.BILLS_AND_UTILITIES,
        (
            "electric",
            "utility",
            "water",
            "internet",
            "phone",
            "cable",
            "insurance",
            "mortgage",
            "rent",
        ),
    ),
    (
        BaseCategory.ENTERTAINMENT,
        (
            "netflix",
            "spotify",
            "movie",
            "theater",
            "gaming",
            "subscription",
            "entertainment",
            "music",
        ),
    ),
    (
        BaseCategory.HEALTHCARE,
        ("pharmacy", "doctor", "medical", "hospital", "health", "dental"),
    ),
)

_INCOME_KEYWORDS = (
    "salary",
    "payroll",
    "wages",
    "direct deposit",
    "employer",
    "freelance",
    "consulting",
    "dividend",
    "interest earned",
    "bonus",
    "commission",
    "tax refund",
    "irs refund",
    "stimulus",
    "unemployment",
)

_POSITIVE_REFUND_KEYWORDS = ("return", "credit adjustment", "reversal", "correction")


def _has_any(desc: str, words: Iterable[str]) -> bool:
    return any(w in desc for w in words)


def _is_positive(amount: Amount) -> bool:
    return amount is not None and amount > 0


def _is_card_payment(desc: str) -> bool:
    if "payment" in desc:
        if _has_any(desc, _CARD_PAYMENT_QUALIFIERS):
            return True
        if "chase" in desc and "card" in desc:
            return True
        if _has_any(desc, _CARD_ISSUERS):
            return True
    return _has_any(desc, _CARD_PAYMENT_PHRASES)


def _is_transfer(desc: str) -> bool:
    if _has_any(desc, _TRANSFER_KEYWORDS):
        return True
    return ("from" in desc and "checking" in desc) or ("to" in desc and "savings" in desc)


def apply_categorization_rules(
    description: str,
    amount: Amount = None,
    *,
    owner_names: Sequence[str] = DEFAULT_OWNER_NAMES,
    employer_names: Sequence[str] = DEFAULT_EMPLOYER_NAMES,
) -> str:
    """Run the ordered rule cascade over ``description``.

    Matching is case-insensitive substring matching. ``amount`` only matters
    for Zelle, investment platforms and otherwise-unmatched inflows.
    """

    desc = (description or "").lower()

    if _has_any(desc, employer_names):
        return BaseCategory.SALARY_INCOME
    if _is_card_payment(desc):
        return BaseCategory.CREDIT_CARD_PAYMENT
    if _is_transfer(desc):
        return BaseCategory.TRANSFER

    if "zelle" in desc:
        if _has_any(desc, owner_names):
            return BaseCategory.SELF_TRANSFER
        if _is_positive(amount):
            return BaseCategory.SPLITWISE_SETTLEMENT
        return BaseCategory.TRANSFER
    if _has_any(desc, _P2P_KEYWORDS):
        return BaseCategory.TRANSFER

    if _has_any(desc, _INVESTMENT_KEYWORDS):
        return BaseCategory.INVESTMENT_WITHDRAWAL if _is_positive(amount) else BaseCategory.INVESTMENT

    for category, keywords in _EXPENSE_GROUPS:
        if _has_any(desc, keywords):
            return category

    if _has_any(desc, _INCOME_KEYWORDS) or (
        "deposit" in desc and ("salary" in desc or "pay" in desc)
    ):
        return BaseCategory.INCOME

    if "refund" in desc and "tax refund" not in desc:
        return BaseCategory.REFUND

    if _is_positive(amount):
        if _has_any(desc, _POSITIVE_REFUND_KEYWORDS):
            return BaseCategory.REFUND
        return BaseCategory.UNCATEGORIZED_INCOME

    return BaseCategory.SHOPPING


class Categorizer:
    """Categorization context bound to one ledger database.

    Build one per process and share it. The mapping cache is keyed by the
    lower-cased description and remembers misses too; any learned mapping
    clears it wholesale.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        owner_names: Sequence[str] = DEFAULT_OWNER_NAMES,
        employer_names: Sequence[str] = DEFAULT_EMPLOYER_NAMES,
    ) -> None:
        self._session_factory = session_factory
        self.owner_names = tuple(n.lower() for n in owner_names)
        self.employer_names = tuple(n.lower() for n in employer_names)
        self._cache: dict[str, str | None] = {}
        # Bumped on every clear; a lookup started before a clear must not
        # write its result back afterwards.
        self._generation = 0
        self._lock = threading.Lock()

    # ---- cache ----

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._generation += 1

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    # ---- lookups ----

    def lookup_mapping(self, description: str) -> str | None:
        """Return the learned category for ``description``, if any.

        When several stored substrings occur in the description, the longest
        one wins. Database errors are logged and treated as "no mapping"
        (and not cached).
        """

        key = description.lower()
        with self._lock:
            if key in self._cache:
                return self._cache[key]
            generation = self._generation

        stmt = (
            select(MerchantCategoryMapping.category)
            .where(
                literal(key, String).like(
                    literal("%", String)
                    + _like_escaped(func.lower(MerchantCategoryMapping.description_substring))
                    + literal("%", String),
                    escape=LIKE_ESCAPE,
                )
            )
            .order_by(
                func.length(MerchantCategoryMapping.description_substring).desc(),
                MerchantCategoryMapping.id,
            )
            .limit(1)
        )
        try:
            with session_scope(self._session_factory) as session:
                found = session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            logger.warning("merchant mapping lookup failed: %s", exc)
            return None

        with self._lock:
            if generation == self._generation:
                self._cache[key] = found
        return found

    def categorize(self, description: str, amount: Amount = None) -> str:
        mapped = self.lookup_mapping(description or "")
        if mapped:
            return mapped
        return str(
            apply_categorization_rules(
                description,
                amount,
                owner_names=self.owner_names,
                employer_names=self.employer_names,
            )
        )

    # ---- learning ----

    def learn_category_mapping(self, description_substring: str, category: str) -> None:
        """Upsert ``description_substring -> category`` and drop the cache.

        Raises ``ValueError`` for an empty substring or an invalid category
        label; database errors propagate.
        """

        substring = " ".join((description_substring or "").split())
        if not substring:
            raise ValueError("description substring cannot be empty")
        label = normalize_name(category or "")
        verdict = validate_name(label)
        if not verdict.ok:
            raise ValueError(f"Invalid category: {verdict.reason}")

        with session_scope(self._session_factory) as session:
            _upsert_mapping(session, substring, label)
        self.clear_cache()
        logger.info("learned category mapping %r -> %r", substring, label)

    # ---- bulk ----

    def recategorize_all(self, user_id: int | None) -> RecategorizeResult:
        """Re-run categorization over the user's transactions.

        Covers transactions on accounts owned by ``user_id`` or unowned. Only
        rows whose category changes are written, each in its own
        transaction; failures are collected (first few) and do not stop the
        run.
        """

        stmt = (
            select(
                LedgerTransaction.id,
                LedgerTransaction.description,
                LedgerTransaction.amount,
                LedgerTransaction.category,
            )
            .distinct()
            .select_from(LedgerTransaction)
            .outerjoin(Account, Account.id == LedgerTransaction.account_id)
            .where(or_(Account.user_id == user_id, Account.user_id.is_(None)))
            .order_by(LedgerTransaction.id)
        )
        with session_scope(self._session_factory) as session:
            rows = session.execute(stmt).all()
        logger.info("recategorizing %d transactions for user_id=%s", len(rows), user_id)

        updated = 0
        errors: list[str] = []
        for tx_id, description, amount, current in rows:
            try:
                new_category = self.categorize(description, amount)
                if new_category == current:
                    continue
                with session_scope(self._session_factory) as session:
                    session.execute(
                        update(LedgerTransaction)
                        .where(LedgerTransaction.id == tx_id)
                        .values(category=new_category)
                    )
                logger.debug("transaction %s: %s -> %s", tx_id, current, new_category)
                updated += 1
            except SQLAlchemyError as exc:
                logger.warning("failed to recategorize transaction %s: %s", tx_id, exc)
                errors.append(f"Transaction {tx_id}: {exc}")

        logger.info("recategorization complete: %d transactions updated", updated)
        return RecategorizeResult(
            updated_count=updated,
            total_count=len(rows),
            errors=tuple(errors[:MAX_RECATEGORIZE_ERRORS]),
        )


LIKE_ESCAPE = "\\"


def _like_escaped(expr):
    """Escape LIKE wildcards in a SQL string expression (``\\`` first)."""

    for char in (LIKE_ESCAPE, "%", "_"):
        expr = func.replace(
            expr, literal(char, String), literal(LIKE_ESCAPE + char, String), type_=String
        )
    return expr


def _upsert_mapping(session: Session, substring: str, category: str) -> None:
    dialect = session.get_bind().dialect.name
    if dialect in {"postgresql", "sqlite"}:
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(MerchantCategoryMapping).values(
            description_substring=substring, category=category
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[MerchantCategoryMapping.description_substring],
            set_={"category": stmt.excluded.category, "updated_at": func.now()},
        )
        session.execute(stmt)
        return

    existing = session.scalars(
        select(MerchantCategoryMapping).where(
            MerchantCategoryMapping.description_substring == substring
        )
    ).first()
    if existing is None:
        session.add(MerchantCategoryMapping(description_substring=substring, category=category))
    else:
        existing.category = category
        existing.updated_at = func.now()


__all__ = ["Categorizer", "apply_categorization_rules"]
