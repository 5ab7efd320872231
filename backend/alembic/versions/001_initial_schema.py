"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _is_active():
    return sa.Column("is_active", sa.Boolean(), server_default="1", nullable=False, index=True)


def _money(name, nullable=False, default="0"):
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, server_default=None if nullable else default)


def upgrade() -> None:
    # Tenants
    op.create_table(
        "franchisors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("company_name", sa.String(200), nullable=True),
        sa.Column("industry_type", sa.String(50), nullable=False, server_default="SERVICE"),
        sa.Column("contact_email", sa.String(255), nullable=True),
        _is_active(),
        *_timestamps(),
    )

    op.create_table(
        "franchises",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchisor_id", sa.Integer(), sa.ForeignKey("franchisors.id"), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False, unique=True),
        _is_active(),
        *_timestamps(),
    )

    flags = [
        ("uses_commissions", "1"), ("uses_inventory", "1"), ("uses_appointments", "1"),
        ("uses_scheduling", "1"), ("uses_loyalty", "1"), ("uses_gift_cards", "1"),
        ("uses_memberships", "0"), ("uses_referrals", "0"), ("uses_tipping", "1"),
        ("uses_discounts", "1"), ("uses_retail_products", "1"), ("uses_services", "1"),
        ("uses_email_marketing", "0"), ("uses_sms_marketing", "0"), ("uses_review_management", "0"),
        ("uses_multi_location", "0"), ("uses_time_tracking", "1"), ("uses_payroll", "0"),
        ("cash_discount_enabled", "0"),
    ]
    op.create_table(
        "business_configs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchisor_id", sa.Integer(), sa.ForeignKey("franchisors.id"), nullable=False, unique=True),
        *[sa.Column(name, sa.Boolean(), nullable=False, server_default=default) for name, default in flags],
        sa.Column("cash_discount_percent", sa.Numeric(5, 2), nullable=False, server_default="3.99"),
        sa.Column("review_request_timing", sa.String(30), nullable=False, server_default="AFTER_PAYMENT"),
        sa.Column("commission_calculation", sa.String(30), nullable=False, server_default="AUTOMATIC"),
        sa.Column("commission_visibility", sa.String(30), nullable=False, server_default="ALWAYS"),
        sa.Column("tax_rate", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("commission_split", sa.Numeric(5, 2), nullable=False, server_default="40"),
        sa.Column("tip_handling", sa.String(20), nullable=False, server_default="BARBER_KEEPS"),
        sa.Column("max_locations", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("subscription_tier", sa.String(20), nullable=False, server_default="STARTER"),
        sa.Column("shift_requirement", sa.String(20), nullable=False, server_default="BOTH"),
        *_timestamps(),
    )

    # Locations and terminals
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False, unique=True),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="America/Chicago"),
        sa.Column("setup_code", sa.String(20), nullable=True, unique=True),
        sa.Column("provisioning_status", sa.String(20), nullable=False, server_default="PENDING"),
        _is_active(),
        *_timestamps(),
    )

    op.create_table(
        "stations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("pairing_code", sa.String(12), nullable=True, unique=True),
        sa.Column("device_fingerprint", sa.String(255), nullable=True),
        sa.Column("is_trusted", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("paired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("PROVIDER", "FRANCHISOR", "FRANCHISEE", "MANAGER", "EMPLOYEE", name="userrole"),
            nullable=False,
            server_default="EMPLOYEE",
        ),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True, index=True),
        sa.Column("pin_hash", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("franchisor_id", sa.Integer(), sa.ForeignKey("franchisors.id"), nullable=True, index=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=True, index=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=True, index=True),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("can_add_services", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("can_add_products", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("can_manage_inventory", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("can_view_reports", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("can_process_refunds", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("can_manage_schedule", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("can_manage_employees", sa.Boolean(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "compensation_plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("compensation_type", sa.String(30), nullable=False),
        sa.Column("commission_split", sa.Numeric(5, 2), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("chair_rent_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("chair_rent_period", sa.String(20), nullable=True),
        sa.Column("effective_from", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )

    # Customers
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True, index=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("last_visit", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_visits", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=True),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("service_name", sa.String(200), nullable=False),
        _money("price"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("status", sa.String(20), nullable=False, server_default="BOOKED"),
        *_timestamps(),
    )

    # Inventory
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=True, index=True),
        sa.Column("barcode", sa.String(64), nullable=True, index=True),
        sa.Column("item_type", sa.String(20), nullable=False, server_default="PRODUCT"),
        _money("price"),
        _money("cost", nullable=True),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reorder_point", sa.Integer(), nullable=True),
        sa.Column("max_stock", sa.Integer(), nullable=True),
        _is_active(),
        *_timestamps(),
    )

    op.create_table(
        "inventory_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transfer_number", sa.String(20), nullable=False, unique=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("from_location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("to_location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING", index=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_items", sa.Integer(), nullable=False, server_default="0"),
        _money("total_value"),
        sa.Column("requested_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("received_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "transfer_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transfer_id", sa.Integer(), sa.ForeignKey("inventory_transfers.id"), nullable=False, index=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("item_sku", sa.String(64), nullable=True),
        sa.Column("quantity_sent", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=True),
        _money("unit_cost"),
    )

    # Gift cards
    op.create_table(
        "gift_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("code", sa.String(19), nullable=False, unique=True, index=True),
        sa.Column("initial_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("current_balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("purchaser_name", sa.String(200), nullable=True),
        sa.Column("recipient_name", sa.String(200), nullable=True),
        sa.Column("recipient_email", sa.String(255), nullable=True),
        sa.Column("issued_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "gift_card_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("gift_card_id", sa.Integer(), sa.ForeignKey("gift_cards.id"), nullable=False, index=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Sales
    op.create_table(
        "cash_drawer_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("start_time", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        _money("starting_cash"),
        _money("ending_cash", nullable=True),
        _money("cash_drops"),
        sa.Column("status", sa.String(10), nullable=False, server_default="OPEN"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.id"), nullable=True),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True, index=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=True, index=True),
        sa.Column("cash_drawer_session_id", sa.Integer(), sa.ForeignKey("cash_drawer_sessions.id"), nullable=True),
        sa.Column("original_transaction_id", sa.Integer(), sa.ForeignKey("transactions.id"), nullable=True),
        _money("subtotal"),
        _money("discount"),
        _money("tax"),
        _money("tip"),
        _money("total"),
        _money("commission_total"),
        _money("owner_total"),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="COMPLETED", index=True),
        sa.Column("gift_card_id", sa.Integer(), sa.ForeignKey("gift_cards.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactions_location_created", "transactions", ["location_id", "created_at"])

    op.create_table(
        "transaction_line_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.Integer(), sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=True, index=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        _money("discount"),
        _money("tax_allocated"),
        _money("tip_allocated"),
        sa.Column("commission_split_used", sa.Numeric(5, 2), nullable=False, server_default="0"),
        _money("commission_amount"),
        _money("owner_amount"),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="PAID"),
    )

    op.create_table(
        "lottery_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("ticket_number", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )

    # Loyalty
    op.create_table(
        "loyalty_programs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False, server_default="Rewards"),
        sa.Column("points_per_dollar", sa.Numeric(8, 2), nullable=False, server_default="1"),
        sa.Column("redemption_ratio", sa.Numeric(8, 4), nullable=False, server_default="0.01"),
        _is_active(),
        *_timestamps(),
    )

    op.create_table(
        "loyalty_master_accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("phone", sa.String(20), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("pooled_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lifetime_points", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "loyalty_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("loyalty_programs.id"), nullable=False, index=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False, index=True),
        sa.Column(
            "master_account_id", sa.Integer(), sa.ForeignKey("loyalty_master_accounts.id"),
            nullable=True, index=True,
        ),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=True),
        sa.Column("phone", sa.String(20), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("points_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lifetime_points", sa.Integer(), nullable=False, server_default="0"),
        _money("lifetime_spend"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("program_id", "phone", name="uq_loyalty_member_program_phone"),
    )

    op.create_table(
        "points_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("loyalty_members.id"), nullable=True, index=True),
        sa.Column(
            "master_account_id", sa.Integer(), sa.ForeignKey("loyalty_master_accounts.id"),
            nullable=True, index=True,
        ),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("transaction_id", sa.Integer(), sa.ForeignKey("transactions.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )

    # Deals
    op.create_table(
        "deal_suggestions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchises.id"), nullable=False),
        sa.Column("week_of", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("deal_type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reasoning", sa.Text(), nullable=True),
        sa.Column("discount_type", sa.String(20), nullable=False, server_default="FIXED_AMOUNT"),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        _money("price_floor", nullable=True),
        _money("min_spend", nullable=True),
        sa.Column("valid_days", sa.JSON(), nullable=True),
        sa.Column("start_time", sa.String(5), nullable=True),
        sa.Column("end_time", sa.String(5), nullable=True),
        sa.Column("audience_count", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        *_timestamps(),
    )

    # Audit trail
    op.create_table(
        "audit_log_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True, index=True),
        sa.Column("user_name", sa.String(200), nullable=True),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("entity_type", sa.String(50), nullable=True, index=True),
        sa.Column("entity_id", sa.String(50), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    op.drop_table("audit_log_entries")
    op.drop_table("deal_suggestions")
    op.drop_table("points_transactions")
    op.drop_table("loyalty_members")
    op.drop_table("loyalty_master_accounts")
    op.drop_table("loyalty_programs")
    op.drop_table("lottery_transactions")
    op.drop_table("transaction_line_items")
    op.drop_index("ix_transactions_location_created", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("cash_drawer_sessions")
    op.drop_table("gift_card_transactions")
    op.drop_table("gift_cards")
    op.drop_table("transfer_items")
    op.drop_table("inventory_transfers")
    op.drop_table("items")
    op.drop_table("suppliers")
    op.drop_table("appointments")
    op.drop_table("clients")
    op.drop_table("compensation_plans")
    op.drop_table("users")
    op.drop_table("stations")
    op.drop_table("locations")
    op.drop_table("business_configs")
    op.drop_table("franchises")
    op.drop_table("franchisors")
