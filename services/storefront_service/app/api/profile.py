"""Routes for the current user's profile."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..dependencies import get_profile_repository, require_user
from ..identity import CurrentUser
from ..repository import ProfileRepository
from ..schemas import ProfileResponse, ProfileUpdate

router = APIRouter(prefix="/profile", tags=["profile"])


def _serialize_profile(profile) -> dict[str, object]:
    return {
        "userId": profile.user_id,
        "fullName": profile.full_name,
        "phone": profile.phone,
        "avatarUrl": profile.avatar_url,
        "createdAt": profile.created_at,
        "updatedAt": profile.updated_at,
    }


@router.get("", response_model=ProfileResponse)
async def get_profile(
    user: CurrentUser = Depends(require_user),
    repository: ProfileRepository = Depends(get_profile_repository),
) -> ProfileResponse:
    profile = await repository.get_profile(user_id=user.id)
    if profile is None:
        # Nothing stored yet; fall back to what the identity provider knows.
        now = datetime.now(timezone.utc)
        return ProfileResponse.model_validate(
            {"userId": user.id, "fullName": user.full_name, "createdAt": now, "updatedAt": now}
        )
    return ProfileResponse.model_validate(_serialize_profile(profile))


@router.put("", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdate,
    user: CurrentUser = Depends(require_user),
    repository: ProfileRepository = Depends(get_profile_repository),
) -> ProfileResponse:
    profile = await repository.upsert_profile(user_id=user.id, updates=payload.model_dump(exclude_unset=True))
    return ProfileResponse.model_validate(_serialize_profile(profile))
