# Client for a remote Verification Service exposing the applications REST API
import logging
from typing import Any, Dict, List, Optional

import httpx

from kyc_case_service.app.config import settings
from kyc_case_service.app.service.exceptions import ConfigurationError, VerificationServiceError
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core.models import (
    PROFILE_CLASS_BY_CASE_TYPE,
    BeneficialOwner,
    Case,
    CaseType,
    DashboardStats,
    Document,
    DocumentType,
    FileUpload,
    Profile,
    ReviewDecision,
    RiskLevel,
    SessionContext,
)

logger = logging.getLogger(__name__)


def _profile_from_payload(case_type: Any, profile: Dict[str, Any]) -> Dict[str, Any]:
    # Server profiles carry bookkeeping (id, application_id, timestamps) the domain model forbids
    profile_cls = PROFILE_CLASS_BY_CASE_TYPE[CaseType(case_type)]
    cleaned = {k: v for k, v in profile.items() if k in profile_cls.model_fields}
    if "beneficial_owners" in cleaned:
        owners = []
        for owner in cleaned["beneficial_owners"] or []:
            row = {k: v for k, v in owner.items() if k in BeneficialOwner.model_fields}
            if row.get("id") is not None:
                row["id"] = str(row["id"])
            owners.append(row)
        cleaned["beneficial_owners"] = owners
    return cleaned


def _case_from_payload(data: Dict[str, Any]) -> Case:
    payload = dict(data)
    # The REST API calls cases "applications"
    if "case_type" not in payload and "application_type" in payload:
        payload["case_type"] = payload.pop("application_type")
    if "documents" in payload and payload["documents"] is None:
        payload["documents"] = []
    # Server ids are integers
    for key in ("id", "user_id", "reviewed_by"):
        if payload.get(key) is not None:
            payload[key] = str(payload[key])
    for document in payload.get("documents") or []:
        for key in ("id", "case_id"):
            if document.get(key) is not None:
                document[key] = str(document[key])
        if "case_id" not in document and document.get("application_id") is not None:
            document["case_id"] = str(document["application_id"])
    try:
        if isinstance(payload.get("profile"), dict) and payload.get("case_type") is not None:
            payload["profile"] = _profile_from_payload(payload["case_type"], payload["profile"])
        return Case(**payload)
    except (ValueError, KeyError) as e:
        logger.error(f"Unreadable case payload from Verification Service: {e}", exc_info=True)
        raise VerificationServiceError(f"Verification Service returned an unreadable case: {e}")


def _unwrap(body: Any, key: str) -> Any:
    if isinstance(body, dict) and key in body:
        return body[key]
    return body


class VerificationServiceClient(AbstractVerificationService):
    def __init__(self, http_client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.http_client = http_client
        self.base_url = (base_url or settings.VERIFICATION_SERVICE_URL or "").rstrip("/")
        if not self.base_url:
            raise ConfigurationError("VERIFICATION_SERVICE_URL is not configured.")

    async def _request(self, session: SessionContext, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if session.token:
            headers["Authorization"] = f"Bearer {session.token}"
        url = f"{self.base_url}{path}"
        logger.debug(f"Verification Service request: {method} {url}")
        try:
            response = await self.http_client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Request error calling Verification Service {method} {url}: {e}", exc_info=True)
            raise VerificationServiceError(f"Verification Service unreachable: {e}")

        if response.is_error:
            reason = self._error_reason(response)
            logger.warning(f"Verification Service returned {response.status_code} for {method} {path}: {reason}")
            raise VerificationServiceError(reason, status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_reason(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            for key in ("error", "detail", "message"):
                if body.get(key):
                    return str(body[key])
        return response.text or f"HTTP {response.status_code}"

    async def create_case(self, session: SessionContext, case_type: CaseType) -> Case:
        body = await self._request(session, "POST", "/applications/", json={"application_type": CaseType(case_type).value})
        return _case_from_payload(_unwrap(body, "application"))

    async def get_case(self, session: SessionContext, case_id: str) -> Case:
        body = await self._request(session, "GET", f"/applications/{case_id}")
        return _case_from_payload(_unwrap(body, "application"))

    async def get_complete_case(self, session: SessionContext, case_id: str) -> Case:
        body = await self._request(session, "GET", f"/applications/{case_id}/complete")
        application = dict(_unwrap(body, "application"))
        if isinstance(body, dict):
            # Nested profile and documents may sit beside the application record
            for key in ("profile", "documents"):
                if key in body and key not in application:
                    application[key] = body[key]
        return _case_from_payload(application)

    async def save_profile(
        self,
        session: SessionContext,
        case_id: str,
        profile: Profile,
        expected_version: Optional[int] = None,
    ) -> Case:
        headers = {}
        if expected_version is not None:
            headers["If-Match"] = str(expected_version)
        await self._request(
            session, "POST", f"/profiles/{case_id}",
            json=profile.model_dump(mode="json", exclude={"profile_kind"}),
            headers=headers,
        )
        return await self.get_complete_case(session, case_id)

    async def submit_case(self, session: SessionContext, case_id: str) -> Case:
        await self._request(session, "PUT", f"/applications/{case_id}/submit")
        return await self.get_complete_case(session, case_id)

    async def upload_document(
        self,
        session: SessionContext,
        case_id: str,
        document_type: DocumentType,
        upload: FileUpload,
    ) -> Document:
        body = await self._request(
            session, "POST", "/documents/upload",
            data={"application_id": case_id, "document_type": DocumentType(document_type).value},
            files={"file": (upload.filename, upload.content or b"", upload.media_type or "application/octet-stream")},
        )
        document = dict(_unwrap(body, "document"))
        document.setdefault("case_id", document.pop("application_id", case_id))
        document.setdefault("original_filename", upload.filename)
        document.setdefault("size_bytes", upload.size_bytes)
        document.setdefault("media_type", upload.media_type)
        return Document(**document)

    async def delete_document(self, session: SessionContext, document_id: str) -> None:
        await self._request(session, "DELETE", f"/documents/{document_id}")

    async def list_cases_for_user(self, session: SessionContext, user_id: str) -> List[Case]:
        body = await self._request(session, "GET", f"/applications/user/{user_id}")
        return [_case_from_payload(item) for item in _unwrap(body, "applications") or []]

    async def list_pending_cases(self, session: SessionContext) -> List[Case]:
        body = await self._request(session, "GET", "/admin/applications/pending")
        return [_case_from_payload(item) for item in _unwrap(body, "applications") or []]

    async def start_review(self, session: SessionContext, case_id: str) -> Case:
        await self._request(session, "POST", f"/admin/applications/{case_id}/start-review")
        return await self.get_complete_case(session, case_id)

    async def review_case(
        self,
        session: SessionContext,
        case_id: str,
        decision: ReviewDecision,
        notes: Optional[str] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> Case:
        payload = {"status": ReviewDecision(decision).value, "review_notes": notes or ""}
        if risk_level is not None:
            payload["risk_level"] = RiskLevel(risk_level).value
        await self._request(session, "PUT", f"/admin/applications/{case_id}/review", json=payload)
        return await self.get_complete_case(session, case_id)

    async def get_dashboard_stats(self, session: SessionContext) -> DashboardStats:
        body = await self._request(session, "GET", "/admin/dashboard")
        return DashboardStats(**(_unwrap(body, "stats") or {}))

