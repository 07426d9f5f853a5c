"""Value types shared by the calculators, the scenario book and storage.

Every input type is a frozen dataclass so a single evaluation always sees a
consistent snapshot.  Mutation happens by building new values (see
``dataclasses.replace``) in the caller-owned store, never inside the engine.

User-entered numbers pass through :func:`to_amount` when a value is built from
a plain dict, so a blank or non-numeric form field becomes ``0.0`` instead of
an error further down.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


ACCOUNT_KEYS: Tuple[str, ...] = (
    "savings",
    "traditional_ira",
    "roth_ira",
    "traditional_401k",
    "roth_401k",
)

TRADITIONAL_ACCOUNTS = ("traditional_ira", "traditional_401k")
TAX_FREE_ACCOUNTS = ("roth_ira", "roth_401k", "savings")


def to_amount(value, default: float = 0.0) -> float:
    """Coerce a user entry to a non-negative float.

    ``None``, blank strings, anything ``float()`` rejects, NaN and infinities
    all become ``default``.  Negative numbers are clamped to zero.
    """
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return max(0.0, number)


class FilingStatus(str, Enum):
    SINGLE = "single"
    JOINT = "joint"

    @classmethod
    def parse(cls, value) -> "FilingStatus":
        """Accept enum members, ``"single"``, ``"joint"`` and the legacy ``"married"``."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text in ("joint", "married", "married_joint", "mfj"):
            return cls.JOINT
        return cls.SINGLE


class AssetClass(str, Enum):
    STOCK = "stock"
    CRYPTO = "crypto"
    METAL = "metal"


@dataclass(frozen=True)
class PersonalInfo:
    age: int = 65
    filing_status: FilingStatus = FilingStatus.SINGLE
    work_months: float = 0.0
    monthly_work_income: float = 0.0
    monthly_pension: float = 0.0
    pension_start_month: int = 13
    interest_income: float = 0.0
    qualified_dividends: float = 0.0
    ordinary_dividends: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping) -> "PersonalInfo":
        return cls(
            age=int(to_amount(data.get("age"), 65)),
            filing_status=FilingStatus.parse(data.get("filing_status")),
            work_months=to_amount(data.get("work_months")),
            monthly_work_income=to_amount(data.get("monthly_work_income")),
            monthly_pension=to_amount(data.get("monthly_pension")),
            pension_start_month=int(to_amount(data.get("pension_start_month"), 13)),
            interest_income=to_amount(data.get("interest_income")),
            qualified_dividends=to_amount(data.get("qualified_dividends")),
            ordinary_dividends=to_amount(data.get("ordinary_dividends")),
        )


@dataclass(frozen=True)
class AccountBalances:
    savings: float = 0.0
    traditional_ira: float = 0.0
    roth_ira: float = 0.0
    traditional_401k: float = 0.0
    roth_401k: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping) -> "AccountBalances":
        return cls(**{k: to_amount(data.get(k)) for k in ACCOUNT_KEYS})

    def as_dict(self) -> Dict[str, float]:
        return {k: getattr(self, k) for k in ACCOUNT_KEYS}


@dataclass(frozen=True)
class Holding:
    """One lot of an asset: quantity owned, cost basis and price per unit."""

    name: str
    quantity: float = 0.0
    cost_basis: float = 0.0
    current_price: float = 0.0

    @property
    def total_value(self) -> float:
        return self.quantity * self.current_price

    @property
    def total_gain(self) -> float:
        return self.quantity * (self.current_price - self.cost_basis)


@dataclass(frozen=True)
class Holdings:
    stocks: Tuple[Holding, ...] = ()
    crypto: Tuple[Holding, ...] = ()
    metals: Tuple[Holding, ...] = ()

    def lots(self, asset_class: AssetClass) -> Tuple[Holding, ...]:
        return {
            AssetClass.STOCK: self.stocks,
            AssetClass.CRYPTO: self.crypto,
            AssetClass.METAL: self.metals,
        }[AssetClass(asset_class)]

    def find(self, asset_class: AssetClass, name: str) -> Optional[Holding]:
        for lot in self.lots(asset_class):
            if lot.name == name:
                return lot
        return None


@dataclass(frozen=True)
class SaleEntry:
    name: str
    quantity: float = 0.0


def _zero_withdrawals() -> Dict[str, float]:
    return {k: 0.0 for k in ACCOUNT_KEYS}


@dataclass(frozen=True)
class Scenario:
    """A withdrawal plan: per-account amounts plus sales from each asset class."""

    id: int
    name: str
    withdrawals: Dict[str, float] = field(default_factory=_zero_withdrawals)
    stock_sales: Tuple[SaleEntry, ...] = ()
    crypto_sales: Tuple[SaleEntry, ...] = ()
    metal_sales: Tuple[SaleEntry, ...] = ()

    def sales(self, asset_class: AssetClass) -> Tuple[SaleEntry, ...]:
        return {
            AssetClass.STOCK: self.stock_sales,
            AssetClass.CRYPTO: self.crypto_sales,
            AssetClass.METAL: self.metal_sales,
        }[AssetClass(asset_class)]

    def withdrawal(self, account: str) -> float:
        return float(self.withdrawals.get(account, 0.0))


@dataclass(frozen=True)
class BracketTier:
    rate: float
    lower: float
    upper: float = math.inf


@dataclass(frozen=True)
class SurchargeTier:
    """An IRMAA tier: MAGI range plus the monthly Part B and Part D add-ons."""

    lower: float
    upper: float
    part_b: float
    part_d: float
    label: str

    @property
    def monthly_total(self) -> float:
        return self.part_b + self.part_d

    @property
    def annual_cost(self) -> float:
        return self.monthly_total * 12


@dataclass(frozen=True)
class TierPlacement:
    tier: object
    room_to_next: float
    room_below: float


@dataclass(frozen=True)
class SaleResult:
    asset_class: AssetClass
    name: str
    quantity: float
    proceeds: float
    basis: float
    gain: float


@dataclass(frozen=True)
class ScenarioResult:
    employment_income: float
    pension_income: float
    traditional_withdrawals: float
    ordinary_income: float
    tax_free_withdrawals: float

    sales: Tuple[SaleResult, ...]
    stock_proceeds: float
    stock_gains: float
    crypto_proceeds: float
    crypto_gains: float
    metal_proceeds: float
    metal_gains: float
    preferential_income: float

    standard_deduction: float
    taxable_ordinary_income: float
    ordinary_tax: float
    preferential_tax: float
    total_tax: float

    current_bracket: BracketTier
    room_in_bracket: float

    state_ordinary_tax: float
    state_preferential_tax: float
    state_total_tax: float
    total_tax_with_state: float

    magi: float
    irmaa_tier: SurchargeTier
    room_to_next_irmaa_tier: float
    room_below_irmaa_tier: float
    irmaa_annual_cost: float

    total_withdrawals: float
    effective_rate: float
    effective_rate_with_state: float

    @property
    def total_cost(self) -> float:
        """Federal and state tax plus a year of IRMAA surcharges."""
        return self.total_tax_with_state + self.irmaa_annual_cost
