from fastapi import APIRouter

api_router = APIRouter()

# Import route modules here
from feeledger.routes import tables, transactions, payments, auth, receipts, uploads

api_router.include_router(tables.router)
api_router.include_router(transactions.router)
api_router.include_router(payments.router)
api_router.include_router(auth.router)
api_router.include_router(receipts.router)
api_router.include_router(uploads.router)
