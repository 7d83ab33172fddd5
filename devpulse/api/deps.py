from fastapi import Depends
from sqlalchemy.orm import Session
from devpulse.db import get_db
from devpulse.events import SqlEventSource
from devpulse.store import SqlMetricStore

def db_dep(db: Session = Depends(get_db)) -> Session:
    return db

def source_dep(db: Session = Depends(db_dep)) -> SqlEventSource:
    return SqlEventSource(db)

def store_dep(db: Session = Depends(db_dep)) -> SqlMetricStore:
    return SqlMetricStore(db)
