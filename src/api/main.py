"""FastAPI main application - OrganLink backend API"""

import secrets
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from src.api.chat_handler import ChatHandler
from src.api.session_manager import SessionManager
from src.api.websocket import websocket_chat_endpoint
from src.config import Settings, configure_logging, get_settings
from src.data.hospitals import HOSPITALS, get_hospital
from src.data.schema import (
    Donor,
    DonorPledge,
    Hospital,
    InterestNotification,
    Organ,
    Recipient,
    RecipientRegistration,
    Urgency,
)
from src.matching.errors import InvalidInputError, NotFoundError
from src.matching.matching_engine import DonorReusePolicy, GreedyMatchingEngine
from src.state.app_state import AppState
from src.storage.local_store import LocalStore


# ============================================
# Pydantic Models
# ============================================

class InterestRequest(BaseModel):
    """Donor signals willingness for one pledged organ"""
    organ: Organ


class InterestResponse(BaseModel):
    notification_id: str
    matched_recipient_id: Optional[str] = None


class WaitlistStatusResponse(BaseModel):
    found: bool
    message: str
    recipient: Optional[Recipient] = None
    hospital_contact: Optional[str] = None


class UrgencyUpdateRequest(BaseModel):
    urgency: Urgency


class MatchPair(BaseModel):
    recipient_id: str
    donor_id: str
    recipient_name: str
    patient_id: str
    donor_name: str
    organ: Organ


class MatchingRunResponse(BaseModel):
    policy: DonorReusePolicy
    matches: list[MatchPair]


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    thinking_mode: bool = False


class ChatResponse(BaseModel):
    success: bool
    reply: str | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str = "1.0.0"
    donors: int = 0
    recipients: int = 0


# ============================================
# Dependencies
# ============================================

def get_state(request: Request) -> AppState:
    return request.app.state.app_state


def get_chat_handler(request: Request) -> ChatHandler:
    return request.app.state.chat_handler


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def require_admin(request: Request, x_admin_pin: str | None = Header(default=None)):
    supplied = (x_admin_pin or "").encode("utf-8")
    expected = request.app.state.settings.admin_pin.encode("utf-8")
    if not secrets.compare_digest(supplied, expected):
        raise HTTPException(status_code=401, detail="Invalid admin PIN")


def platform_context(state: AppState) -> str:
    """Live waitlist summary handed to the assistant"""
    demand = state.organ_demand()
    if not demand:
        most_needed = "none"
    else:
        ranked = sorted(demand.items(), key=lambda x: x[1], reverse=True)
        most_needed = ", ".join(f"{organ.value} ({count})" for organ, count in ranked)
    return (
        f"Registered donors: {len(state.donors)}; pledged organs: {state.total_pledges()}; "
        f"patients on the waitlist: {len(state.recipients)}; demand by organ: {most_needed}."
    )


# ============================================
# App factory
# ============================================

def create_app(
    settings: Optional[Settings] = None,
    state: Optional[AppState] = None,
    session_manager: Optional[SessionManager] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        logger.info("Starting up OrganLink API...")
        yield
        logger.info(
            f"Shutting down OrganLink API ({app.state.session_manager.get_active_sessions_count()} chat sessions open)"
        )

    app = FastAPI(
        title="OrganLink API",
        description="Organ donation pledges, recipient waitlist and donor-recipient matching",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app_state = state or AppState(LocalStore(settings.storage_dir))
    sessions = session_manager or SessionManager(settings, context_provider=lambda: platform_context(app_state))

    app.state.settings = settings
    app.state.app_state = app_state
    app.state.session_manager = sessions
    app.state.chat_handler = ChatHandler(sessions)

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    _register_routes(app)
    return app


def _register_routes(app: FastAPI):

    # ============================================
    # Health / directory
    # ============================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check(state: AppState = Depends(get_state)):
        return HealthResponse(status="ok", donors=len(state.donors), recipients=len(state.recipients))

    @app.get("/api/v1/hospitals", response_model=list[Hospital], tags=["Hospitals"])
    def list_hospitals():
        return HOSPITALS

    # ============================================
    # Donors
    # ============================================

    @app.get("/api/v1/donors", response_model=list[Donor], tags=["Donors"])
    def list_donors(state: AppState = Depends(get_state)):
        return state.donors

    @app.post("/api/v1/donors", response_model=Donor, status_code=201, tags=["Donors"])
    def pledge(pledge: DonorPledge, state: AppState = Depends(get_state)):
        return state.add_donor(pledge)

    @app.delete("/api/v1/donors/{donor_id}/organs/{organ}", tags=["Donors"])
    def withdraw_pledge(donor_id: str, organ: Organ, state: AppState = Depends(get_state)):
        donor = state.withdraw_pledge(donor_id, organ)
        return {"removed": donor is None, "donor": donor.to_json_dict() if donor else None}

    @app.post("/api/v1/donors/{donor_id}/interest", response_model=InterestResponse, tags=["Donors"])
    def express_interest(donor_id: str, body: InterestRequest, state: AppState = Depends(get_state)):
        outcome = state.express_interest(donor_id, body.organ)
        return InterestResponse(
            notification_id=outcome.notification.id,
            matched_recipient_id=outcome.matched_recipient_id,
        )

    @app.get("/api/v1/organs/demand", tags=["Donors"])
    def organ_demand(state: AppState = Depends(get_state)):
        return {
            "total_pledges": state.total_pledges(),
            "demand": [{"organ": o.value, "count": c} for o, c in state.organ_demand().items()],
        }

    # ============================================
    # Waitlist (public) and hospitals
    # ============================================

    @app.get("/api/v1/waitlist/{patient_id}", response_model=WaitlistStatusResponse, tags=["Waitlist"])
    def waitlist_status(patient_id: str, state: AppState = Depends(get_state)):
        recipient = state.find_recipient_by_patient_id(patient_id)
        hospital = get_hospital(recipient.hospital_id) if recipient else None
        return WaitlistStatusResponse(
            found=recipient is not None,
            message=AppState.status_message(recipient, patient_id),
            recipient=recipient,
            hospital_contact=hospital.contact if hospital else None,
        )

    @app.get("/api/v1/hospitals/{mock_id}/recipients", response_model=list[Recipient], tags=["Hospitals"])
    def hospital_requests(mock_id: str, state: AppState = Depends(get_state)):
        if get_hospital(mock_id) is None:
            raise NotFoundError(f"Hospital not found: {mock_id}")
        return state.hospital_requests(mock_id)

    @app.post("/api/v1/hospitals/{mock_id}/recipients", response_model=Recipient, status_code=201, tags=["Hospitals"])
    def register_recipient(mock_id: str, registration: RecipientRegistration,
                                 state: AppState = Depends(get_state)):
        if get_hospital(mock_id) is None:
            raise NotFoundError(f"Hospital not found: {mock_id}")
        return state.add_recipient(registration.model_copy(update={"hospital_id": mock_id}))

    # ============================================
    # Admin
    # ============================================

    admin = [Depends(require_admin)]

    @app.get("/api/v1/admin/dashboard", dependencies=admin, tags=["Admin"])
    def dashboard(state: AppState = Depends(get_state)):
        return state.dashboard()

    @app.get("/api/v1/admin/urgency-analysis", dependencies=admin, tags=["Admin"])
    def urgency_analysis(state: AppState = Depends(get_state)):
        return state.urgency_analysis()

    @app.post("/api/v1/admin/matching/run", response_model=MatchingRunResponse, dependencies=admin, tags=["Admin"])
    def run_matching(policy: DonorReusePolicy = DonorReusePolicy.PER_ORGAN,
                     state: AppState = Depends(get_state)):
        matches = state.run_matching(matcher=GreedyMatchingEngine(policy))
        return MatchingRunResponse(
            policy=policy,
            matches=[
                MatchPair(
                    recipient_id=m.recipient.id,
                    donor_id=m.donor.id,
                    recipient_name=m.recipient.name,
                    patient_id=m.recipient.patient_id,
                    donor_name=m.donor.name,
                    organ=m.recipient.organ_needed,
                )
                for m in matches
            ],
        )

    @app.patch("/api/v1/admin/recipients/{recipient_id}", response_model=Recipient, dependencies=admin, tags=["Admin"])
    def update_urgency(recipient_id: str, body: UrgencyUpdateRequest, state: AppState = Depends(get_state)):
        return state.update_recipient_urgency(recipient_id, body.urgency)

    @app.delete("/api/v1/admin/recipients/{recipient_id}", status_code=204, dependencies=admin, tags=["Admin"])
    def delete_recipient(recipient_id: str, state: AppState = Depends(get_state)):
        state.delete_recipient(recipient_id)

    @app.post("/api/v1/admin/recipients/mock", response_model=Recipient, status_code=201,
              dependencies=admin, tags=["Admin"])
    def add_mock_recipient(state: AppState = Depends(get_state)):
        return state.add_mock_recipient()

    @app.get("/api/v1/admin/notifications", response_model=list[InterestNotification],
             dependencies=admin, tags=["Admin"])
    def list_notifications(state: AppState = Depends(get_state)):
        return state.notifications

    @app.delete("/api/v1/admin/notifications/{notification_id}", status_code=204,
                dependencies=admin, tags=["Admin"])
    def clear_notification(notification_id: str, state: AppState = Depends(get_state)):
        state.clear_notification(notification_id)

    @app.get("/api/v1/admin/notifications/{notification_id}/screening", dependencies=admin, tags=["Admin"])
    def screening_report(notification_id: str, state: AppState = Depends(get_state)):
        return state.screening_report(notification_id)

    # ============================================
    # Assistant chat
    # ============================================

    @app.post("/api/v1/chat/{session_id}", response_model=ChatResponse, tags=["Chat"])
    async def chat(session_id: str, body: ChatRequest, handler: ChatHandler = Depends(get_chat_handler)):
        result = await handler.handle_user_message(session_id, body.message, body.thinking_mode)
        return ChatResponse(**result)

    @app.delete("/api/v1/chat/{session_id}", tags=["Chat"])
    async def reset_chat(session_id: str, handler: ChatHandler = Depends(get_chat_handler)):
        result = await handler.reset_conversation(session_id)
        if not result["success"]:
            raise HTTPException(status_code=404, detail=result["error"])
        return result

    @app.websocket("/ws/chat/{session_id}")
    async def chat_ws(websocket: WebSocket, session_id: str):
        await websocket_chat_endpoint(websocket, session_id)

    @app.get("/api/v1/admin/sessions", dependencies=admin, tags=["Admin"])
    async def list_sessions(sessions: SessionManager = Depends(get_session_manager)):
        infos = [sessions.get_session_info(sid) for sid in list(sessions.sessions)]
        return {"count": sessions.get_active_sessions_count(), "sessions": [i for i in infos if i]}

    @app.post("/api/v1/admin/sessions/cleanup", dependencies=admin, tags=["Admin"])
    async def cleanup_inactive_sessions(timeout_seconds: int = 3600,
                                        sessions: SessionManager = Depends(get_session_manager)):
        count = sessions.cleanup_inactive_sessions(timeout_seconds)
        return {"success": True, "cleaned": count, "message": f"Cleaned up {count} inactive sessions"}

    @app.get("/api/v1/admin/usage", dependencies=admin, tags=["Admin"])
    async def llm_usage(sessions: SessionManager = Depends(get_session_manager)):
        return sessions.router.get_usage_report()


def run():
    """Entry point for `organlink-api`"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
