"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from message_sync.services.conversation_session import ConversationSession
from message_sync.services.reconciliation_engine import ReconciliationEngine


def get_engine(request: Request) -> ReconciliationEngine:
    return request.app.state.engine


EngineDep = Annotated[ReconciliationEngine, Depends(get_engine)]


def get_session(conversation_id: str, engine: EngineDep) -> ConversationSession:
    return ConversationSession(engine, conversation_id)


SessionDep = Annotated[ConversationSession, Depends(get_session)]
