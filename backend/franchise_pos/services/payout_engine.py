"""Payout engine: commission, tip and tax math for a checkout.

Every amount is computed once at checkout and stored on the line item.
Reports only ever sum these snapshots; they never recompute payouts.
Refunds are recorded as negated copies of the original snapshots.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import List, Optional

from franchise_pos.db.base import to_money
from franchise_pos.models.tenant import TipHandling

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass
class PayoutConfig:
    """Commission/tip/tax settings in effect for a checkout."""

    commission_split: Decimal = Decimal("40")  # percent to the staff member
    tip_handling: TipHandling = TipHandling.BARBER_KEEPS
    tax_rate: Decimal = Decimal("0")  # percent

    @classmethod
    def from_business_config(cls, config) -> "PayoutConfig":
        if config is None:
            return cls()
        return cls(
            commission_split=Decimal(str(config.commission_split)),
            tip_handling=TipHandling(config.tip_handling),
            tax_rate=Decimal(str(config.tax_rate)),
        )


@dataclass
class LineItemInput:
    type: str  # SERVICE or PRODUCT
    price: Decimal
    quantity: int = 1
    discount: Decimal = ZERO
    description: str = ""
    item_id: Optional[int] = None
    staff_id: Optional[int] = None

    @property
    def earns_commission(self) -> bool:
        return self.type == "SERVICE" and self.staff_id is not None


@dataclass
class LineItemSnapshot:
    description: str
    price_charged: Decimal
    discount_allocated: Decimal
    tax_allocated: Decimal
    tip_allocated: Decimal
    commission_split_used: Decimal
    commission_amount: Decimal
    owner_amount: Decimal
    business_date: date
    status: str = "PAID"

    @property
    def net_amount(self) -> Decimal:
        return to_money(self.price_charged - self.discount_allocated)


@dataclass
class PayoutTotals:
    subtotal: Decimal = ZERO
    discount_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    tip_total: Decimal = ZERO
    grand_total: Decimal = ZERO
    commission_total: Decimal = ZERO
    owner_total: Decimal = ZERO


@dataclass
class TransactionPayoutResult:
    snapshots: List[LineItemSnapshot] = field(default_factory=list)
    totals: PayoutTotals = field(default_factory=PayoutTotals)


def calculate_line_item_snapshot(
    item: LineItemInput,
    tip_for_item: Decimal,
    config: PayoutConfig,
    business_date: date,
) -> LineItemSnapshot:
    """Payout snapshot for a single line item."""
    price_charged = to_money(Decimal(str(item.price)) * item.quantity)
    discount_allocated = to_money(item.discount)
    net_amount = to_money(price_charged - discount_allocated)

    tax_allocated = to_money(net_amount * config.tax_rate / HUNDRED)

    commission_split_used = Decimal("0")
    commission_amount = ZERO
    owner_amount = net_amount
    tip_allocated = ZERO

    if item.earns_commission:
        commission_split_used = config.commission_split
        commission_amount = to_money(net_amount * commission_split_used / HUNDRED)
        owner_amount = to_money(net_amount - commission_amount)

        if config.tip_handling == TipHandling.BARBER_KEEPS:
            tip_allocated = to_money(tip_for_item)
        elif config.tip_handling == TipHandling.SPLIT:
            tip_allocated = to_money(tip_for_item * config.commission_split / HUNDRED)

    return LineItemSnapshot(
        description=item.description,
        price_charged=price_charged,
        discount_allocated=discount_allocated,
        tax_allocated=tax_allocated,
        tip_allocated=tip_allocated,
        commission_split_used=commission_split_used,
        commission_amount=commission_amount,
        owner_amount=owner_amount,
        business_date=business_date,
    )


def calculate_transaction_payouts(
    items: List[LineItemInput],
    total_tip: Decimal,
    config: PayoutConfig,
    business_date: date,
) -> TransactionPayoutResult:
    """Snapshots for every line plus transaction totals.

    The tip is divided evenly across service lines performed by a staff
    member; other lines get no tip.
    """
    total_tip = to_money(total_tip)
    with_staff = [i for i in items if i.earns_commission]
    tip_per_service = to_money(total_tip / len(with_staff)) if with_staff else ZERO

    snapshots = [
        calculate_line_item_snapshot(
            item,
            tip_per_service if item.earns_commission else ZERO,
            config,
            business_date,
        )
        for item in items
    ]

    totals = PayoutTotals(
        subtotal=to_money(sum((s.price_charged for s in snapshots), ZERO)),
        discount_total=to_money(sum((s.discount_allocated for s in snapshots), ZERO)),
        tax_total=to_money(sum((s.tax_allocated for s in snapshots), ZERO)),
        tip_total=to_money(sum((s.tip_allocated for s in snapshots), ZERO)),
        commission_total=to_money(sum((s.commission_amount for s in snapshots), ZERO)),
        owner_total=to_money(sum((s.owner_amount for s in snapshots), ZERO)),
    )
    totals.grand_total = to_money(
        totals.subtotal - totals.discount_total + totals.tax_total + totals.tip_total
    )
    return TransactionPayoutResult(snapshots=snapshots, totals=totals)


def create_refund_reversals(snapshots: List[LineItemSnapshot]) -> List[LineItemSnapshot]:
    """Negated copies of ``snapshots`` marked REFUNDED."""
    return [
        replace(
            s,
            price_charged=-s.price_charged,
            discount_allocated=-s.discount_allocated,
            tax_allocated=-s.tax_allocated,
            tip_allocated=-s.tip_allocated,
            commission_amount=-s.commission_amount,
            owner_amount=-s.owner_amount,
            status="REFUNDED",
        )
        for s in snapshots
    ]


def validate_commission_invariant(snapshot: LineItemSnapshot) -> bool:
    """commission + owner must equal the net amount of the line."""
    return abs(snapshot.net_amount - (snapshot.commission_amount + snapshot.owner_amount)) < Decimal("0.01")


def validate_refund_nets_to_zero(
    sale: List[LineItemSnapshot], refund: List[LineItemSnapshot]
) -> bool:
    """Staff earnings of a sale and its refund must cancel out."""
    sale_total = sum((s.commission_amount + s.tip_allocated for s in sale), ZERO)
    refund_total = sum((s.commission_amount + s.tip_allocated for s in refund), ZERO)
    return abs(sale_total + refund_total) < Decimal("0.01")
