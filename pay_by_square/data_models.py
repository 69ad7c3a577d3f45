"""Data models for the Pay by Square encoder.

This module defines the dataclasses describing a payment instruction: the
target accounts (``AccountRef``), the options a caller may set
(``PaymentOptions``) and the immutable ``PaymentRecord`` that the encoding
pipeline consumes. Records are never mutated; every update returns a new
record, which makes them safe to share between threads and to encode
repeatedly.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple

from .exceptions import ValidationError
from .utils import decimal_from_str, int_or_none, parse_date


class AccountResolver(Protocol):
    """Derives the bank identifier (BIC) for an account number."""

    def resolve_bic(self, iban: str) -> str:
        ...


def normalize_iban(iban: str) -> str:
    """Strip whitespace and upper-case an account identifier."""
    return "".join(str(iban).split()).upper()


@dataclass(frozen=True)
class AccountRef:
    """A target account: the account identifier and its bank identifier.

    Attributes
    ----------
    iban: str
        The account identifier. It is stored normalized (no whitespace,
        upper case) because it is also the deduplication key.
    bic: str
        The payment-network identifier of the account's bank. The format
        allows it to be empty.
    """

    iban: str
    bic: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "iban", normalize_iban(self.iban))
        object.__setattr__(self, "bic", str(self.bic or "").strip().upper())

    @property
    def key(self) -> str:
        return self.iban

    @classmethod
    def from_iban(
        cls,
        iban: str,
        bic: Optional[str] = None,
        resolver: Optional[AccountResolver] = None,
    ) -> "AccountRef":
        """Build an account, asking ``resolver`` for the BIC when none is given."""
        if not bic and resolver is not None:
            try:
                bic = resolver.resolve_bic(normalize_iban(iban))
            except ValidationError:
                raise
            except Exception as exc:
                raise ValidationError(f"Cannot derive BIC for account {iban}: {exc}") from exc
        return cls(iban=iban, bic=bic or "")


# camelCase spellings accepted by PaymentOptions.from_mapping
_OPTION_ALIASES = {
    "internalId": "internal_id",
    "dueDate": "due_date",
    "variableSymbol": "variable_symbol",
    "specificSymbol": "specific_symbol",
    "constantSymbol": "constant_symbol",
    "payeeName": "payee_name",
}


@dataclass(frozen=True)
class PaymentOptions:
    """The recognized payment fields, all optional.

    A ``None`` value means "not given": applying the options to a record
    leaves the corresponding field unchanged.
    """

    internal_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    due_date: Optional[date] = None
    variable_symbol: Optional[int] = None
    specific_symbol: Optional[int] = None
    constant_symbol: Optional[int] = None
    comment: Optional[str] = None
    payee_name: Optional[str] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "PaymentOptions":
        """Build options from a plain mapping, e.g. a decoded JSON body.

        Keys may be snake_case field names or their camelCase spellings.
        Unknown keys are rejected with ``ValidationError``.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in mapping.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValidationError(f"Unknown payment option: {key}")
            values[name] = value
        return cls(**values)

    def items(self) -> Iterable[Tuple[str, Any]]:
        """Yield ``(field, value)`` for every option that was given."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                yield f.name, value


@dataclass(frozen=True)
class PaymentRecord:
    """A payment instruction ready to be encoded.

    Values are coerced on construction (amounts to ``Decimal``, symbols to
    ``int``, due dates to ``date``) but not validated; the only validation
    happens at encode time. ``due_date=None`` means "today", evaluated on
    every encode call.
    """

    accounts: Tuple[AccountRef, ...] = ()
    internal_id: str = ""
    amount: Decimal = Decimal("0")
    currency: str = "EUR"
    due_date: Optional[date] = None
    variable_symbol: Optional[int] = None
    specific_symbol: Optional[int] = None
    constant_symbol: Optional[int] = None
    comment: str = ""
    payee_name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "accounts", _dedupe(self.accounts))
        object.__setattr__(self, "internal_id", str(self.internal_id))
        object.__setattr__(self, "amount", decimal_from_str(self.amount))
        object.__setattr__(self, "currency", str(self.currency))
        if self.due_date is not None:
            object.__setattr__(self, "due_date", parse_date(self.due_date))
        for name in ("variable_symbol", "specific_symbol", "constant_symbol"):
            object.__setattr__(self, name, int_or_none(getattr(self, name)))
        object.__setattr__(self, "comment", str(self.comment))
        object.__setattr__(self, "payee_name", str(self.payee_name))

    @classmethod
    def from_options(
        cls,
        options: PaymentOptions,
        accounts: Iterable[AccountRef] = (),
    ) -> "PaymentRecord":
        return cls(accounts=tuple(accounts), **dict(options.items()))

    @classmethod
    def from_iban(cls, iban: str, bic: Optional[str] = None, **kwargs: Any) -> "PaymentRecord":
        """Shortcut for a record paying into a single account."""
        return cls(accounts=(AccountRef.from_iban(iban, bic),), **kwargs)

    @classmethod
    def from_ibans(cls, accounts: Iterable[AccountRef], **kwargs: Any) -> "PaymentRecord":
        return cls(accounts=tuple(accounts), **kwargs)

    def with_options(self, options: PaymentOptions) -> "PaymentRecord":
        """Return a copy with every given option applied."""
        return replace(self, **dict(options.items()))

    def with_account(self, account: AccountRef) -> "PaymentRecord":
        """Return a copy with ``account`` appended, unless its key is already present."""
        if any(a.key == account.key for a in self.accounts):
            return self
        return replace(self, accounts=self.accounts + (account,))

    def without_account(self, account: AccountRef) -> "PaymentRecord":
        """Return a copy without the account sharing ``account``'s key."""
        remaining = tuple(a for a in self.accounts if a.key != account.key)
        if len(remaining) == len(self.accounts):
            return self
        return replace(self, accounts=remaining)

    def with_accounts(self, accounts: Iterable[AccountRef]) -> "PaymentRecord":
        """Return a copy whose accounts are replaced by ``accounts``."""
        return replace(self, accounts=tuple(accounts))

    def resolved_due_date(self, today: Optional[date] = None) -> date:
        if self.due_date is not None:
            return self.due_date
        return today or date.today()


def _dedupe(accounts: Iterable[AccountRef]) -> Tuple[AccountRef, ...]:
    """Drop repeated account keys, keeping the first occurrence in place."""
    seen = set()
    result = []
    for account in accounts:
        if not isinstance(account, AccountRef):
            raise TypeError(f"Expected AccountRef, got {type(account).__name__}")
        if account.key in seen:
            continue
        seen.add(account.key)
        result.append(account)
    return tuple(result)
