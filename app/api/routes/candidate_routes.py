"""
Candidate Routes

PUT /candidates/{user_id}/profile - Create or update own profile
GET /candidates/{user_id} - Get a profile
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from app.core.auth import get_current_user, ensure_same_user
from app.services.mongo_service import CandidateService
from app.schemas.schemas import CandidateProfileUpdate, CandidateResponse

router = APIRouter(prefix="/candidates", tags=["Candidates"])


@router.put("/{user_id}/profile", response_model=CandidateResponse)
async def upsert_profile(user_id: str, data: CandidateProfileUpdate, user: Optional[dict] = Depends(get_current_user)):
    """Create or update the candidate profile used for applications and squad matching."""
    ensure_same_user(user, user_id)
    profile = data.model_dump()
    profile["skills"] = [s.strip() for s in data.skills if s and s.strip()]
    return CandidateService().upsert(user_id, profile)


@router.get("/{user_id}", response_model=CandidateResponse)
async def get_profile(user_id: str, user: Optional[dict] = Depends(get_current_user)):
    """Get a candidate profile."""
    candidate = CandidateService().get(user_id)
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidate profile not found")
    return candidate
