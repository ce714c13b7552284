"""HTTP routes for issuing and verifying training certificates."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import IntegrityError

from services.common import ServiceSettings

from ..certificates import DEFAULT_ISSUER, normalize_certificate_number, verification_url
from ..dependencies import get_certificate_repository, get_settings
from ..repository import CertificateRepository
from ..schemas import (
    CertificateCreate,
    CertificateListResponse,
    CertificateResponse,
    CertificateUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/certificates", tags=["certificates"])

DUPLICATE_CERTIFICATE_DETAIL = "A certificate with this ID already exists"
_NON_NULLABLE_FIELDS = ("certificate_number", "full_name", "issuing_organization", "status")


def _serialize_certificate(certificate, settings: ServiceSettings) -> dict[str, object]:
    return {
        "id": certificate.id,
        "certificateNumber": certificate.certificate_number,
        "fullName": certificate.full_name,
        "program": certificate.program,
        "trainingPeriod": certificate.training_period,
        "passportUrl": certificate.passport_url,
        "issuingOrganization": certificate.issuing_organization,
        "status": certificate.status,
        "issuedAt": certificate.issued_at,
        "verificationUrl": verification_url(settings.verification_base_url, certificate.certificate_number),
    }


def _duplicate() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_CERTIFICATE_DETAIL)


@router.post("", response_model=CertificateResponse, status_code=status.HTTP_201_CREATED)
async def create_certificate(
    payload: CertificateCreate,
    repository: CertificateRepository = Depends(get_certificate_repository),
    settings: ServiceSettings = Depends(get_settings),
) -> CertificateResponse:
    fields = payload.model_dump()
    fields["certificate_number"] = normalize_certificate_number(payload.certificate_number)
    fields["issuing_organization"] = payload.issuing_organization or DEFAULT_ISSUER

    if await repository.get_by_number(fields["certificate_number"]) is not None:
        raise _duplicate()
    try:
        certificate = await repository.create_certificate(**fields)
    except IntegrityError as exc:
        raise _duplicate() from exc

    logger.info("Issued certificate %s", certificate.certificate_number)
    return CertificateResponse.model_validate(_serialize_certificate(certificate, settings))


@router.get("", response_model=CertificateListResponse)
async def list_certificates(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    repository: CertificateRepository = Depends(get_certificate_repository),
    settings: ServiceSettings = Depends(get_settings),
) -> CertificateListResponse:
    certificates, total = await repository.list_certificates(limit=limit, offset=offset)
    items = [
        CertificateResponse.model_validate(_serialize_certificate(certificate, settings))
        for certificate in certificates
    ]
    return CertificateListResponse(items=items, total=total)


@router.get("/verify/{certificate_number}", response_model=CertificateResponse)
async def verify_certificate(
    certificate_number: str,
    repository: CertificateRepository = Depends(get_certificate_repository),
    settings: ServiceSettings = Depends(get_settings),
) -> CertificateResponse:
    """Public lookup used by the verification page and QR codes."""

    certificate = await repository.get_by_number(normalize_certificate_number(certificate_number))
    if certificate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")
    return CertificateResponse.model_validate(_serialize_certificate(certificate, settings))


@router.get("/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(
    certificate_id: int,
    repository: CertificateRepository = Depends(get_certificate_repository),
    settings: ServiceSettings = Depends(get_settings),
) -> CertificateResponse:
    certificate = await repository.get_certificate(certificate_id)
    if certificate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")
    return CertificateResponse.model_validate(_serialize_certificate(certificate, settings))


@router.patch("/{certificate_id}", response_model=CertificateResponse)
async def update_certificate(
    certificate_id: int,
    payload: CertificateUpdate,
    repository: CertificateRepository = Depends(get_certificate_repository),
    settings: ServiceSettings = Depends(get_settings),
) -> CertificateResponse:
    certificate = await repository.get_certificate(certificate_id)
    if certificate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")

    updates = payload.model_dump(exclude_unset=True)
    for field in _NON_NULLABLE_FIELDS:
        if field in updates and updates[field] is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field} cannot be null",
            )
    if "certificate_number" in updates:
        number = normalize_certificate_number(updates["certificate_number"])
        existing = await repository.get_by_number(number)
        if existing is not None and existing.id != certificate.id:
            raise _duplicate()
        updates["certificate_number"] = number

    try:
        certificate = await repository.update_certificate(certificate, updates)
    except IntegrityError as exc:
        raise _duplicate() from exc
    return CertificateResponse.model_validate(_serialize_certificate(certificate, settings))


@router.delete("/{certificate_id}")
async def delete_certificate(
    certificate_id: int,
    repository: CertificateRepository = Depends(get_certificate_repository),
) -> Response:
    certificate = await repository.get_certificate(certificate_id)
    if certificate is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    await repository.delete_certificate(certificate)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
