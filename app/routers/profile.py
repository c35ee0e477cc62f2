from fastapi import APIRouter, Depends, status

from app.models.user import User
from app.schemas.user import ProfileResponse, ProfileUpdate
from app.services.auth_middleware import get_credential_store, get_current_user
from app.services.credential_store import CredentialStore
from app.utils.response import create_response, handle_exception

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("/me")
def get_profile(current_user: User = Depends(get_current_user)):
    try:
        profile_payload = ProfileResponse.model_validate(current_user).model_dump()
        return create_response(
            message="Profile fetched successfully",
            data=profile_payload,
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.put("/update")
def update_profile(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    store: CredentialStore = Depends(get_credential_store),
):
    try:
        update_data = update.model_dump(exclude_unset=True)
        user = current_user
        if "name" in update_data:
            user = store.update_profile(current_user, update_data["name"])

        profile_payload = ProfileResponse.model_validate(user).model_dump()
        return create_response(
            message="Profile updated successfully",
            data=profile_payload,
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.delete("/delete")
def delete_account(
    current_user: User = Depends(get_current_user),
    store: CredentialStore = Depends(get_credential_store),
):
    try:
        store.delete_user(current_user)
        return create_response(
            message="Account deleted successfully",
            data={"deleted": True},
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
