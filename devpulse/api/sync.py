from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from devpulse.api.deps import db_dep
from devpulse.ingest.github_ingest import RepositoryNotTracked, sync_repository

router = APIRouter(tags=["sync"])

@router.post("/repositories/{repository_id}/sync")
def sync_github(repository_id: int, since_days: int | None = None, db: Session = Depends(db_dep)):
    try:
        counts = sync_repository(repository_id, db, since_days=since_days)
    except RepositoryNotTracked as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"status": "ok", **counts}
