"""FastAPI dependencies shared by the routers (services, auth, multipart images)."""
from __future__ import annotations

from fastapi import Depends, Request, UploadFile

from shopfront.core.errors import ForbiddenError
from shopfront.core.image_store import ImageStore, ImageUpload, LocalImageStore
from shopfront.services.auth_service import AuthService
from shopfront.services.record_service import InventoryService, UserService
from shopfront.services.session_service import bearer_token


def get_auth_service() -> AuthService:
    return AuthService()


def get_user_image_store() -> ImageStore:
    return LocalImageStore(folder="users")


def get_inventory_image_store() -> ImageStore:
    return LocalImageStore(folder="inventories")


def get_user_service(image_store: ImageStore = Depends(get_user_image_store)) -> UserService:
    return UserService(image_store)


def get_inventory_service(image_store: ImageStore = Depends(get_inventory_image_store)) -> InventoryService:
    return InventoryService(image_store)


def require_session(request: Request, auth: AuthService = Depends(get_auth_service)) -> dict:
    """Claims of the caller's live session; 401 otherwise."""
    return auth.authenticate(bearer_token(request))


def require_admin(claims: dict = Depends(require_session)) -> dict:
    if claims.get("role") != "admin":
        raise ForbiddenError("Administrator access is required")
    return claims


def ensure_self_or_admin(claims: dict, user_id: str) -> None:
    if claims.get("role") != "admin" and claims.get("sub") != user_id:
        raise ForbiddenError("You are not allowed to manage this user")


async def read_images(files: list[UploadFile] | None) -> list[ImageUpload]:
    uploads: list[ImageUpload] = []
    for file_obj in files or []:
        if not file_obj or not file_obj.filename:
            continue
        uploads.append(
            ImageUpload(
                filename=file_obj.filename,
                content_type=(file_obj.content_type or "").lower(),
                data=await file_obj.read(),
            )
        )
    return uploads
