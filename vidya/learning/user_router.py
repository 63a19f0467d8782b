from fastapi import APIRouter, HTTPException, Depends

from vidya.learning.database import LearningStore
from vidya.learning.dependencies import get_store
from vidya.learning.errors import DuplicateMobileError
from vidya.learning.leveling import apply_profile_changes
from vidya.learning.models import User, UserCreate, UserUpdate, ProfileResponse

router = APIRouter(tags=["Users"])

# ==================== USER PROFILE ====================

@router.post("/users", response_model=User, status_code=201)
async def create_user(payload: UserCreate, store: LearningStore = Depends(get_store)):
    try:
        return await store.create_user(payload)
    except DuplicateMobileError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/auth/complete-profile", response_model=ProfileResponse, include_in_schema=False)
async def complete_profile(payload: UserCreate, store: LearningStore = Depends(get_store)):
    """Profile step after OTP login"""
    user = await create_user(payload, store)
    return ProfileResponse(success=True, user=user)


@router.get("/users/{user_id}", response_model=User)
@router.get("/user/{user_id}", response_model=User, include_in_schema=False)
async def get_user(user_id: str, store: LearningStore = Depends(get_store)):
    user = await store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/users/{user_id}", response_model=User)
@router.put("/user/{user_id}", response_model=User, include_in_schema=False)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    store: LearningStore = Depends(get_store)
):
    """Merge the given fields into the profile. Points updates keep the level in step."""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    user = await store.update_user(user_id, lambda u: apply_profile_changes(u, changes))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
