from fastapi import FastAPI

from devpulse.db import init_db
from devpulse.api import analytics, sync


app = FastAPI(title="DevPulse")
app.include_router(analytics.router)
app.include_router(sync.router)

@app.on_event("startup")
def _startup():
    init_db()

@app.get("/health")
def health():
    return {"status": "ok", "project": "DevPulse"}
