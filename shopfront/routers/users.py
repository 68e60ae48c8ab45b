from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from shopfront.core.rate_limiter import rate_limit_ip
from shopfront.core.responses import list_message, respond
from shopfront.routers.dependencies import (
    ensure_self_or_admin,
    get_auth_service,
    get_user_service,
    read_images,
    require_session,
)
from shopfront.services.auth_service import AuthService
from shopfront.services.record_service import UserService
from shopfront.services.session_service import bearer_token

router = APIRouter(prefix="/users", tags=["users"])


class LoginBody(BaseModel):
    email: str = ""
    password: str = ""


class PasswordChangeBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_password: Optional[str] = Field(None, alias="newPassword")
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")


class OtpRequestBody(BaseModel):
    email: str = ""


class PasswordResetBody(PasswordChangeBody):
    verification_code: Optional[str] = Field(None, alias="verificationCode")


@router.get("")
def list_users(service: UserService = Depends(get_user_service), _claims: dict = Depends(require_session)):
    data = service.list_active()
    return respond(data, list_message(data, "No Users found", "All Users retrieved successfully"))


@router.get("/deleted")
def list_deleted_users(service: UserService = Depends(get_user_service), _claims: dict = Depends(require_session)):
    data = service.list_deleted()
    return respond(data, list_message(data, "No Deleted Users found", "All Deleted Users retrieved successfully"))


@router.post("/login")
def login(request: Request, body: LoginBody, auth: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "users:login", limit=10, window_seconds=60)
    result = auth.login(body.email, body.password)
    return respond(
        result.user.to_dict(),
        "User Login successfully",
        access=result.access_token,
        token_type="bearer",
        expires_at=result.expires_at.isoformat(),
    )


@router.post("/logout")
def logout(request: Request, auth: AuthService = Depends(get_auth_service)):
    auth.logout(bearer_token(request))
    return respond([], "User Logout successfully")


@router.post("/otp")
def send_otp(request: Request, body: OtpRequestBody, auth: AuthService = Depends(get_auth_service)):
    rate_limit_ip(request, "users:otp", limit=5, window_seconds=300)
    user = auth.request_otp(body.email)
    return respond([user.to_dict()], "Email OTP sent successfully")


@router.post("/reset-password")
def reset_password(body: PasswordResetBody, auth: AuthService = Depends(get_auth_service)):
    user = auth.reset_password(body.verification_code, body.new_password, body.confirm_password)
    return respond([user.to_dict()], "Password Successfully Reset")


@router.get("/{user_id}")
def get_user(user_id: str, service: UserService = Depends(get_user_service), _claims: dict = Depends(require_session)):
    return respond(service.get(user_id), "User retrieved successfully")


@router.post("", status_code=201)
async def create_user(
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    image: list[UploadFile] | None = File(None),
    service: UserService = Depends(get_user_service),
):
    files = await read_images(image)
    data = service.create({"name": name, "email": email, "password": password}, files)
    return respond([data], "User created successfully", status=201)


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    name: str | None = Form(None),
    email: str | None = Form(None),
    image: list[UploadFile] | None = File(None),
    service: UserService = Depends(get_user_service),
    claims: dict = Depends(require_session),
):
    ensure_self_or_admin(claims, user_id)
    patch = {key: value for key, value in {"name": name, "email": email}.items() if value is not None}
    files = await read_images(image)
    data = service.update(user_id, patch, files)
    return respond([data], "User updated successfully")


@router.delete("/{user_id}")
def delete_user(user_id: str, service: UserService = Depends(get_user_service), claims: dict = Depends(require_session)):
    ensure_self_or_admin(claims, user_id)
    outcome = service.soft_delete(user_id)
    if not outcome.changed:
        return respond([], "User is already deleted")
    return respond([outcome.record], "User deleted successfully")


@router.post("/{user_id}/restore")
def restore_user(user_id: str, service: UserService = Depends(get_user_service), claims: dict = Depends(require_session)):
    ensure_self_or_admin(claims, user_id)
    outcome = service.restore(user_id)
    if not outcome.changed:
        return respond([], "User is not deleted")
    return respond([outcome.record], "User restored successfully")


@router.delete("/{user_id}/force")
def force_delete_user(user_id: str, service: UserService = Depends(get_user_service), claims: dict = Depends(require_session)):
    ensure_self_or_admin(claims, user_id)
    data = service.force_delete(user_id)
    return respond([data], "User force deleted successfully")


@router.patch("/{user_id}/password")
def change_password(
    user_id: str,
    body: PasswordChangeBody,
    auth: AuthService = Depends(get_auth_service),
    claims: dict = Depends(require_session),
):
    ensure_self_or_admin(claims, user_id)
    user = auth.change_password(user_id, body.new_password, body.confirm_password)
    return respond([user.to_dict()], "Password changed successfully")
