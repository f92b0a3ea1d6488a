"""FastAPI routes for bouncer sessions, projects and interactions."""
from __future__ import annotations

from typing import List, Tuple, Type

from fastapi import APIRouter, Depends, Header, HTTPException

from api.schemas import CreateProjectReq, InteractionReq, ProjectResp, RegisterResp, SignatureReq
from interview.errors import (
    AgentCallFailure,
    BouncerError,
    ConfigMissing,
    InterviewClosed,
    InterviewStateError,
    SessionMissing,
    SignatureUnavailable,
)
from interview.models import BouncerConfig
from services.bouncer import BouncerService, SignatureGrant, TurnOutcome, get_service
from storage.projects import ProjectStore

_STATUS_BY_ERROR: List[Tuple[Type[BouncerError], int]] = [
    (ConfigMissing, 404),
    (AgentCallFailure, 502),
    (SessionMissing, 400),
    (InterviewClosed, 409),
    (InterviewStateError, 409),
    (SignatureUnavailable, 400),
]


def _http_error(exc: BouncerError) -> HTTPException:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def get_project_store() -> ProjectStore:
    return ProjectStore()


users_router = APIRouter(prefix="/api/users")
projects_router = APIRouter(prefix="/api/projects")
interaction_router = APIRouter(prefix="/api/interaction")


@users_router.post("/register", response_model=RegisterResp)
def register(
    user_id: str = Header(alias="X-User-Id", min_length=1),
    service: BouncerService = Depends(get_service),
) -> RegisterResp:
    session = service.register_session(user_id)
    return RegisterResp(user_id=user_id, started_at=session.started_at, ttl_seconds=service.session_ttl_s)


@projects_router.post("", response_model=ProjectResp, status_code=201)
def create_project(
    req: CreateProjectReq,
    store: ProjectStore = Depends(get_project_store),
) -> ProjectResp:
    config = BouncerConfig(
        mandatory_knowledge=req.mandatory_knowledge,
        project_desc=req.project_desc,
        whitepaper_knowledge=req.whitepaper_knowledge,
        character_choice=req.character_choice,
    )
    store.upsert_project(req.project_id, config, token_address=req.token_address)
    return ProjectResp(project_id=req.project_id, token_address=req.token_address)


@interaction_router.post("/{project_id}", response_model=TurnOutcome)
def interact(
    project_id: str,
    req: InteractionReq,
    user_id: str = Header(alias="X-User-Id", min_length=1),
    service: BouncerService = Depends(get_service),
) -> TurnOutcome:
    try:
        return service.turn(
            project_id,
            user_id,
            req.answer,
            reset=req.reset,
            wallet_address=req.wallet_address,
        )
    except BouncerError as exc:
        raise _http_error(exc) from exc


@interaction_router.post("/{project_id}/signature", response_model=SignatureGrant)
def signature(
    project_id: str,
    req: SignatureReq,
    user_id: str = Header(alias="X-User-Id", min_length=1),
    service: BouncerService = Depends(get_service),
) -> SignatureGrant:
    try:
        return service.issue_signature(project_id, user_id, req.user_wallet_address)
    except BouncerError as exc:
        raise _http_error(exc) from exc


routers = [users_router, projects_router, interaction_router]
