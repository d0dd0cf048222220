"""FastAPI app entrypoint."""
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from settleup.database import engine, Base
from settleup.logging import configure_logging
from settleup.routers import balances, settlements

configure_logging(os.getenv("LOG_LEVEL", "INFO"))

Base.metadata.create_all(bind=engine)

_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [o.strip() for o in _origins_env.split(",") if o.strip()] if _origins_env else ["*"]

app = FastAPI(
    title="SettleUp Ledger API",
    description="Who owes whom in a group, and the fewest payments that settle everyone up.",
    version="1.0.0",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(balances.router, prefix="/api")
app.include_router(settlements.router, prefix="/api")


@app.get("/")
def root():
    return {"message": "SettleUp Ledger API", "docs": "/docs"}
