"""FastAPI application exposing the confession feed."""

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import UploadFile

from .config import Config
from .errors import (
    Blocked,
    ChallengeFailed,
    ConfessWallError,
    InvalidId,
    MessageTooLong,
)
from .sanitizer import sanitize
from .services.abuse_gate import AbuseGate
from .services.audit_log import AuditLog
from .services.challenge_service import ChallengeVerifier
from .services.confession_store import ConfessionStore
from .uploads import UploadStorage

logger = logging.getLogger(__name__)

MAX_CONFESSION_ID = 2**63 - 1
_ID_PATTERN = re.compile(r"^\d{1,19}$")
RATE_LIMIT_HEADER = "X-RateLimit-Remaining"


def client_address(request: Request, trust_proxy: bool = False) -> str:
    """Network address used as the rate-limit key.

    Behind a trusted proxy this is the last X-Forwarded-For hop, the one
    the proxy itself appended.
    """
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            return hops[-1]
    if request.client is None:
        return "unknown"
    return request.client.host


def parse_confession_id(raw: str) -> int:
    """Parse a path id into a positive 64-bit integer."""
    if not _ID_PATTERN.match(raw):
        raise InvalidId()
    confession_id = int(raw)
    if confession_id < 1 or confession_id > MAX_CONFESSION_ID:
        raise InvalidId()
    return confession_id


def error_body(error: ConfessWallError) -> dict:
    body = {"success": False, "error": error.reason, "message": error.message}

    if isinstance(error, Blocked):
        record = error.record
        body["status"] = "BLOCKED DDOS ACTIVITY DETECTED"
        body["details"] = {
            "ipAddress": record.client_key,
            "country": record.country,
            "userAgent": record.user_agent,
        }
    elif isinstance(error, ChallengeFailed):
        body["errors"] = error.error_codes

    return body


def create_app(
    config: Config,
    store: ConfessionStore,
    abuse_gate: AbuseGate,
    audit_log: AuditLog,
    verifier: ChallengeVerifier,
    uploads: Optional[UploadStorage] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Application configuration
        store: Confession store owning the feed
        abuse_gate: Rate limiter shared by all write endpoints
        audit_log: Destination for blocked-request records
        verifier: Human verification backend
        uploads: Photo storage (built from config when omitted)

    Returns:
        Configured FastAPI app
    """
    uploads = uploads or UploadStorage(config.uploads, config.server.public_base_url)
    uploads.ensure_directory()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        await store.initialize()
        logger.info("Confession wall ready")
        try:
            yield
        finally:
            await store.close()
            logger.info("Confession store closed")

    app = FastAPI(
        title="Confess Wall",
        description="Anonymous confessions with abuse protection",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    if config.uploads.serve:
        app.mount(
            config.uploads.public_path,
            StaticFiles(directory=str(uploads.directory), check_dir=False),
            name="uploads",
        )

    @app.exception_handler(ConfessWallError)
    async def handle_confess_wall_error(request: Request, exc: ConfessWallError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.reason)
        response = JSONResponse(error_body(exc), status_code=exc.status_code)
        if isinstance(exc, Blocked):
            response.headers[RATE_LIMIT_HEADER] = "0"
        return response

    async def admit(request: Request) -> str:
        """Run the abuse gate for this request and return the client key."""
        client_key = client_address(request, config.server.trust_proxy)
        admission = abuse_gate.admit(
            client_key,
            country=request.headers.get("CF-IPCountry"),
            user_agent=request.headers.get("User-Agent"),
        )
        if not admission.allowed:
            await audit_log.record(admission.record)
            raise Blocked(admission.record)
        return client_key

    def with_allowance(response: JSONResponse, client_key: str) -> JSONResponse:
        """Report the requests left in the client's current window."""
        response.headers[RATE_LIMIT_HEADER] = str(abuse_gate.remaining(client_key))
        return response

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "confess-wall"
        }

    @app.get("/confessions")
    async def list_confessions() -> JSONResponse:
        """Return the feed, newest first."""
        confessions = await store.list()
        return JSONResponse([c.to_dict() for c in confessions])

    @app.post("/confess")
    async def post_confession(request: Request) -> JSONResponse:
        """Accept a confession with an optional photo."""
        client_key = await admit(request)

        form = await request.form()
        raw_message = form.get("message")
        photo_part = form.get("photo")

        message = sanitize(raw_message if isinstance(raw_message, str) else None)
        max_length = config.server.max_message_length
        if max_length is not None and len(message) > max_length:
            raise MessageTooLong(f"Message exceeds {max_length} characters.")

        photo = None
        data = b""
        if isinstance(photo_part, UploadFile):
            data = await photo_part.read(config.uploads.max_bytes + 1)
            photo = uploads.validate(photo_part.content_type, len(data), photo_part.filename)

        photo_ref = None
        if photo is not None:
            photo_ref = await uploads.save(photo, data)

        try:
            confession = await store.append(message, photo_ref=photo_ref)
        except ConfessWallError:
            if photo is not None:
                await uploads.discard(photo)
            raise

        return with_allowance(
            JSONResponse({"success": True, "confession": confession.to_dict()}, status_code=201),
            client_key,
        )

    @app.post("/confess/{confession_id}/like")
    async def like_confession(confession_id: str, request: Request) -> JSONResponse:
        """Add one like to a confession."""
        client_key = await admit(request)
        likes = await store.like(parse_confession_id(confession_id))
        return with_allowance(JSONResponse({"success": True, "likes": likes}), client_key)

    @app.post("/verify-turnstile")
    async def verify_turnstile(request: Request) -> JSONResponse:
        """Check a human-verification token with the upstream service."""
        client_key = await admit(request)

        try:
            body = await request.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        token = body.get("token") or body.get("cf-turnstile-response")

        result = await verifier.verify(token if isinstance(token, str) else None, client_key)
        if not result.success:
            raise ChallengeFailed(result.error_codes)

        return with_allowance(
            JSONResponse({"success": True, "message": "CAPTCHA verified successfully."}),
            client_key,
        )

    return app
