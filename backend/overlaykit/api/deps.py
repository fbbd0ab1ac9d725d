from fastapi import Depends, Request
from sqlalchemy.orm import Session

from overlaykit.core.auth import UserSession, get_session
from overlaykit.core.db import get_db
from overlaykit.core.errors import UnauthenticatedError
from overlaykit.services.elements import TreeMutationEngine
from overlaykit.services.file_store import FileStore, LocalFileStore
from overlaykit.services.realtime import RealtimeHub, hub
from overlaykit.services.repository import SqlAlchemyRepository


def get_repository(db: Session = Depends(get_db)) -> SqlAlchemyRepository:
    return SqlAlchemyRepository(db)


def get_hub() -> RealtimeHub:
    return hub


def get_file_store() -> FileStore:
    return LocalFileStore()


def get_current_session(
    request: Request,
    repo: SqlAlchemyRepository = Depends(get_repository),
) -> UserSession:
    session = get_session(request, repo.db)
    if session is None:
        raise UnauthenticatedError()
    # Grants added by name before this user existed become theirs now
    repo.resolve_pending_grants(session.user_id, session.display_name)
    return session


def get_engine(
    repo: SqlAlchemyRepository = Depends(get_repository),
    realtime: RealtimeHub = Depends(get_hub),
) -> TreeMutationEngine:
    return TreeMutationEngine(repo, realtime)
