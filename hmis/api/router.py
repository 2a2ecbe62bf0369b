# hmis/api/router.py
from fastapi import APIRouter
from hmis.api import (
    # Patients / events
    routes_patients,

    # Queue / workflow
    routes_queue,
    routes_workflow,

    # Inpatient / ICU
    routes_ipd,
    routes_icu,

    # Inventory
    routes_inventory_transactions,
)

api_router = APIRouter()

api_router.include_router(routes_patients.router)
api_router.include_router(routes_queue.router)
api_router.include_router(routes_workflow.router)
api_router.include_router(routes_ipd.router)
api_router.include_router(routes_icu.router)
api_router.include_router(routes_inventory_transactions.router)
