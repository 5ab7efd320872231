"""SQLAlchemy models."""

from franchise_pos.models.tenant import (
    BusinessConfig,
    Franchise,
    Franchisor,
    ShiftRequirement,
    SubscriptionTier,
    TipHandling,
)
from franchise_pos.models.location import Location, ProvisioningStatus, Station
from franchise_pos.models.user import CompensationPlan, User
from franchise_pos.models.client import Appointment, AppointmentStatus, Client
from franchise_pos.models.inventory import (
    InventoryTransfer,
    Item,
    Supplier,
    TransferItem,
    TransferStatus,
)
from franchise_pos.models.gift_card import GiftCard, GiftCardTransaction
from franchise_pos.models.transaction import (
    CashDrawerSession,
    DrawerStatus,
    LineItemStatus,
    LineItemType,
    LotteryTransaction,
    LotteryType,
    PaymentMethod,
    Transaction,
    TransactionLineItem,
    TransactionStatus,
)
from franchise_pos.models.loyalty import (
    LoyaltyMasterAccount,
    LoyaltyMember,
    LoyaltyProgram,
    PointsTransaction,
)
from franchise_pos.models.deal import DealSuggestion
from franchise_pos.models.operations import AuditLogEntry

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AuditLogEntry",
    "BusinessConfig",
    "CashDrawerSession",
    "Client",
    "CompensationPlan",
    "DealSuggestion",
    "DrawerStatus",
    "Franchise",
    "Franchisor",
    "GiftCard",
    "GiftCardTransaction",
    "InventoryTransfer",
    "Item",
    "LineItemStatus",
    "LineItemType",
    "Location",
    "LotteryTransaction",
    "LotteryType",
    "LoyaltyMasterAccount",
    "LoyaltyMember",
    "LoyaltyProgram",
    "PaymentMethod",
    "PointsTransaction",
    "ProvisioningStatus",
    "ShiftRequirement",
    "Station",
    "SubscriptionTier",
    "Supplier",
    "TipHandling",
    "Transaction",
    "TransactionLineItem",
    "TransactionStatus",
    "TransferItem",
    "TransferStatus",
    "User",
]
