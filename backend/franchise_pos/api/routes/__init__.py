"""API routes."""

from fastapi import APIRouter

from franchise_pos.api.routes import (
    appointments,
    audit_logs,
    auth,
    clients,
    deals,
    employees,
    franchises,
    franchisors,
    gift_cards,
    inventory,
    locations,
    lottery,
    loyalty,
    pos,
    reports,
    stations,
    transactions,
    transfers,
)

api_router = APIRouter()

# Tenants
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(franchisors.router, prefix="/franchisors", tags=["franchisors"])
api_router.include_router(franchisors.config_router, prefix="/business-config", tags=["business-config"])
api_router.include_router(franchises.router, tags=["franchises"])
api_router.include_router(locations.router, prefix="/locations", tags=["locations"])
api_router.include_router(stations.router, prefix="/stations", tags=["stations"])
api_router.include_router(employees.router, prefix="/franchise/employees", tags=["employees"])

# Point of sale
api_router.include_router(pos.router, prefix="/pos", tags=["pos"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(lottery.router, prefix="/lottery", tags=["lottery"])
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])

# Inventory
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(transfers.router, prefix="/transfers", tags=["transfers", "inventory"])

# Loyalty, gift cards, deals
api_router.include_router(loyalty.router, prefix="/loyalty", tags=["loyalty"])
api_router.include_router(loyalty.owner_router, prefix="/owner/loyalty", tags=["loyalty", "owner"])
api_router.include_router(gift_cards.router, prefix="/owner/gift-cards", tags=["gift-cards", "owner"])
api_router.include_router(deals.router, prefix="/deals", tags=["deals"])

# Reports
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(reports.franchise_router, prefix="/franchise/reports", tags=["reports"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit"])
