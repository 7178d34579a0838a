from fastapi import FastAPI

from dairy_billing.api.bills import router as bills_router
from dairy_billing.api.clients import router as clients_router
from dairy_billing.api.deliveries import router as deliveries_router

app = FastAPI(
    title="Dairy Billing & Delivery Reconciliation API",
    version="0.1.0",
)

@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(clients_router)
app.include_router(deliveries_router)
app.include_router(bills_router)
