import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from contacts.models import ContactCreate, ContactView

from .config import get_settings
from .exceptions import (
    AlreadyUnlockedError,
    InsufficientPointsError,
    InvalidInputError,
    LedgerServiceError,
    NotFoundError,
)
from .models import (
    ActivityAppendResponse,
    ActivityRequest,
    ActivitySummary,
    BulkCreateRequest,
    BulkCreateResponse,
    ContactCreatedResponse,
    Ledger,
    UnlockedContactsResponse,
    UnlockRequest,
    UnlockResult,
)
from .service import LedgerService

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Contact directory where uploads earn points and points unlock private contact details",
    version=settings.app_version,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_ledger_service() -> LedgerService:
    return LedgerService(settings=settings)


def _http_error(status_code: int, error: LedgerServiceError) -> HTTPException:
    return HTTPException(status_code=status_code, detail=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
    )


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "contact-ledger"}


@app.get("/contacts", response_model=list[ContactView], tags=["Contacts"])
def list_contacts(
    user_id: Optional[str] = None,
    service: LedgerService = Depends(get_ledger_service),
) -> list[ContactView]:
    return service.list_contacts(user_id)


@app.get("/contacts/{contact_id}", response_model=ContactView, tags=["Contacts"])
def get_contact(
    contact_id: str,
    user_id: Optional[str] = None,
    service: LedgerService = Depends(get_ledger_service),
) -> ContactView:
    try:
        return service.get_contact(contact_id, user_id)
    except NotFoundError as e:
        raise _http_error(status.HTTP_404_NOT_FOUND, e)


@app.post("/contacts", response_model=ContactCreatedResponse, status_code=status.HTTP_201_CREATED, tags=["Contacts"])
def create_contact(
    request: ContactCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> ContactCreatedResponse:
    try:
        return service.create_contact(request)
    except InvalidInputError as e:
        raise _http_error(status.HTTP_400_BAD_REQUEST, e)


@app.post("/contacts/bulk", response_model=BulkCreateResponse, status_code=status.HTTP_201_CREATED, tags=["Contacts"])
def bulk_create_contacts(
    request: BulkCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> BulkCreateResponse:
    try:
        return service.bulk_create_contacts(request.profiles, request.uploaded_by)
    except InvalidInputError as e:
        raise _http_error(status.HTTP_400_BAD_REQUEST, e)


@app.post("/contacts/{contact_id}/unlock", response_model=UnlockResult, tags=["Contacts"])
def unlock_contact(
    contact_id: str,
    request: UnlockRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> UnlockResult:
    try:
        return service.unlock(request.user_id, contact_id)
    except NotFoundError as e:
        raise _http_error(status.HTTP_404_NOT_FOUND, e)
    except AlreadyUnlockedError as e:
        raise _http_error(status.HTTP_409_CONFLICT, e)
    except InsufficientPointsError as e:
        raise _http_error(status.HTTP_402_PAYMENT_REQUIRED, e)


@app.get("/dashboard/{user_id}", response_model=Ledger, tags=["Dashboard"])
def get_dashboard(user_id: str, service: LedgerService = Depends(get_ledger_service)) -> Ledger:
    return service.get_ledger(user_id)


@app.get("/dashboard/{user_id}/unlocked", response_model=UnlockedContactsResponse, tags=["Dashboard"])
def get_unlocked_contacts(
    user_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> UnlockedContactsResponse:
    try:
        return service.get_unlocked_contacts(user_id)
    except NotFoundError as e:
        raise _http_error(status.HTTP_404_NOT_FOUND, e)


@app.get("/dashboard/{user_id}/activity", response_model=ActivitySummary, tags=["Dashboard"])
def get_activity(user_id: str, service: LedgerService = Depends(get_ledger_service)) -> ActivitySummary:
    try:
        return service.get_activity_summary(user_id)
    except NotFoundError as e:
        raise _http_error(status.HTTP_404_NOT_FOUND, e)


@app.patch("/dashboard/{user_id}/activity", response_model=ActivityAppendResponse, tags=["Dashboard"])
def add_activity(
    user_id: str,
    request: ActivityRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> ActivityAppendResponse:
    try:
        ledger = service.append_activity(user_id, request.activity)
    except InvalidInputError as e:
        raise _http_error(status.HTTP_400_BAD_REQUEST, e)
    return ActivityAppendResponse(
        activity=request.activity.strip(),
        total_activities=len(ledger.recent_activity),
        ledger=ledger,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
