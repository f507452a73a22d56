"""
FastAPI backend: friend-link applications, admin review and link-list pull requests.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel, ConfigDict, Field

from friendlink.application import (
    AuthorizationError,
    ExternalServiceError,
    FriendLinkError,
    FriendLinkService,
    NotFoundError,
    Notifier,
    StateTransitionError,
    ValidationError,
)
from friendlink.config import Settings
from friendlink.domain import STATE_LABELS, FriendApplication, FriendProfile, dump_entry
from friendlink.infrastructure import (
    GitHubLinkHost,
    Neo4jApplicationRepository,
    SmtpMailer,
    ensure_application_constraint,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (StateTransitionError, 409),
    (ExternalServiceError, 502),
)


def _get_driver(settings: Settings):
    return GraphDatabase.driver(
        settings.neo4j_uri, auth=(settings.neo4j_user, settings.neo4j_password)
    )


def get_service(app: FastAPI) -> FriendLinkService:
    """Return the service wired by the lifespan."""
    service = getattr(app.state, "service", None)
    if service is None:
        raise RuntimeError("FriendLinkService is not wired; start the app through its lifespan.")
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.driver = None
    app.state.host = None
    app.state.executor = None
    settings = Settings.from_env()
    logger.info("Friend link API ready. Review links point at API_DOMAIN/api/friend-review.")
    try:
        app.state.driver = _get_driver(settings)
        ensure_application_constraint(app.state.driver)
        app.state.executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mail")
        app.state.host = GitHubLinkHost(
            settings.github_token,
            settings.github_owner,
            settings.github_repo,
            base_url=settings.github_api_url,
        )
        app.state.service = FriendLinkService(
            settings,
            Neo4jApplicationRepository(app.state.driver),
            app.state.host,
            Notifier(SmtpMailer(settings.smtp), app.state.executor),
        )
        yield
    finally:
        app.state.service = None
        if app.state.executor is not None:
            app.state.executor.shutdown(wait=True)
        if app.state.host is not None:
            app.state.host.close()
        if app.state.driver is not None:
            app.state.driver.close()


app = FastAPI(title="Friend Link API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("[%s] %s", request.method, request.url.path)
    return await call_next(request)


@app.exception_handler(FriendLinkError)
async def friend_link_error_handler(request: Request, exc: FriendLinkError):
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})


# --- REST: health ---


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/")
def index():
    return {"service": "Friend Link API"}


# --- REST: friend links ---

router = APIRouter(prefix="/api")


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ApplyBody(_Body):
    name: str | None = None
    link: str | None = None
    avatar_link: str | None = Field(None, alias="avatarLink")
    descr: str | None = None
    email: str | None = None

    def profile(self) -> FriendProfile:
        return FriendProfile(
            name=self.name or "",
            link=self.link or "",
            avatar_link=self.avatar_link or "",
            descr=self.descr or "",
        )


class UpdateFriendBody(ApplyBody):
    original_link: str | None = Field(None, alias="originalLink")


class ReviewBody(_Body):
    id: str | None = None
    pwd: str | None = None


class RejectBody(ReviewBody):
    reason: str | None = None


class EditBody(ReviewBody):
    name: str | None = None
    link: str | None = None
    avatar_link: str | None = Field(None, alias="avatarLink")
    descr: str | None = None
    email: str | None = None


def _require_id(application_id: str | None) -> str:
    if not application_id or not application_id.strip():
        raise ValidationError("Missing id parameter")
    return application_id.strip()


def _application_json(a: FriendApplication) -> dict:
    return {
        "id": a.id,
        "name": a.name,
        "link": a.link,
        "avatarLink": a.avatar_link,
        "descr": a.descr,
        "email": a.email,
        "state": a.state.value,
        "stateLabel": STATE_LABELS[a.state],
        "originalLink": a.original_link,
        "rejectReason": a.reject_reason,
        "prUrl": a.pr_url,
        "prNumber": a.pr_number,
        "createdAt": a.created_at.isoformat(),
        "updatedAt": a.updated_at.isoformat() if a.updated_at else None,
    }


@router.post("/friend/apply")
def apply(body: ApplyBody, request: Request):
    service = get_service(request.app)
    application_id = service.submit(body.profile(), body.email or "")
    return {"success": True, "id": application_id}


@router.post("/friend/update-friend")
def update_friend(body: UpdateFriendBody, request: Request):
    service = get_service(request.app)
    application_id = service.submit_update(
        body.original_link or "", body.profile(), body.email or ""
    )
    return {
        "success": True,
        "id": application_id,
        "message": "Update request submitted, waiting for review",
    }


@router.get("/friend/list")
def list_applications(request: Request, pwd: str | None = None):
    service = get_service(request.app)
    applications = service.list_applications(pwd)
    return {"success": True, "list": [_application_json(a) for a in applications]}


@router.get("/friend/detail")
def detail(request: Request, id: str | None = None, pwd: str | None = None):
    application_id = _require_id(id)
    service = get_service(request.app)
    return {"success": True, "data": _application_json(service.get(application_id, pwd))}


@router.get("/friend-review")
def review(request: Request, id: str | None = None, pwd: str | None = None):
    """Entry point of the review link mailed to the admin."""
    application_id = _require_id(id)
    service = get_service(request.app)
    application = service.get(application_id, pwd)
    return {
        "success": True,
        "data": _application_json(application),
        "actions": {
            "previewDiff": "/api/friend/preview-diff",
            "approve": "/api/friend/create-pr",
            "reject": "/api/friend/reject",
        },
    }


@router.post("/friend/update")
def edit(body: EditBody, request: Request):
    application_id = _require_id(body.id)
    service = get_service(request.app)
    application = service.edit(
        application_id,
        body.pwd,
        name=body.name,
        link=body.link,
        avatar_link=body.avatar_link,
        descr=body.descr,
        email=body.email,
    )
    return {"success": True, "data": _application_json(application)}


@router.post("/friend/create-pr")
def create_pr(body: ReviewBody, request: Request):
    application_id = _require_id(body.id)
    service = get_service(request.app)
    result = service.approve(application_id, body.pwd)
    return {"success": True, "prUrl": result.pr_url, "prNumber": result.pr_number, "type": result.kind}


@router.post("/friend/reject")
def reject(body: RejectBody, request: Request):
    application_id = _require_id(body.id)
    service = get_service(request.app)
    application = service.reject(application_id, body.pwd, body.reason)
    return {"success": True, "rejectReason": application.reject_reason}


@router.get("/friend/match-friend")
def match_friend(request: Request, url: str | None = None):
    service = get_service(request.app)
    entry = service.match_link(url or "")
    if entry is None:
        return {"success": False, "info": "Friend link not found", "entry": None}
    return {"success": True, "info": dump_entry(entry), "entry": entry.to_dict()}


@router.get("/friend/preview-diff")
def preview_diff(request: Request, id: str | None = None, pwd: str | None = None):
    application_id = _require_id(id)
    service = get_service(request.app)
    preview = service.preview_diff(application_id, pwd)
    return {
        "success": True,
        "data": {
            "diff": preview.diff,
            "oldEntry": preview.old_entry,
            "newEntry": preview.new_entry,
            "type": preview.kind,
        },
    }


app.include_router(router)
