"""
Record use cases shared by users and inventories: listing, lookup, creation
and update with images, soft delete, restore and force delete.

Image uploads happen before the record write; if the write fails the fresh
uploads are removed again. Replaced images are removed only after the new
record state is committed. Force delete removes the record and its images in
one transaction, so an image-store failure keeps the record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from shopfront.core.config import get_settings
from shopfront.core.errors import BadRequestError, NotFoundError
from shopfront.core.image_store import ImageStore, ImageUpload
from shopfront.core.security import hash_password
from shopfront.db.session import transaction
from shopfront.repositories.sql_repository import EntityRepository, InventoryRepository, UserRepository
from shopfront.services.session_service import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class DeleteOutcome:
    record: dict
    changed: bool


class RecordService:
    label = "Record"

    def __init__(self, repository: EntityRepository, image_store: ImageStore):
        self.repository = repository
        self.image_store = image_store

    # -------------------------------------- hooks --------------------------------------
    def _prepare_create(self, data: dict) -> dict:
        return data

    def _prepare_update(self, record_id: str, patch: dict) -> dict:
        return patch

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"No {self.label} found")

    def _discard(self, public_ids: Iterable[str], reason: str) -> None:
        ids = [pid for pid in public_ids if pid]
        if not ids:
            return
        try:
            self.image_store.delete(ids)
        except Exception:
            logger.exception(f"Could not remove {len(ids)} image(s) after {reason}", extra={"entity": self.label})

    # -------------------------------------- reads --------------------------------------
    def list_active(self) -> list[dict]:
        return [entity.to_dict() for entity in self.repository.list_active()]

    def list_deleted(self) -> list[dict]:
        return [entity.to_dict() for entity in self.repository.list_deleted()]

    def get(self, record_id: str) -> dict:
        entity = self.repository.get_active_by_id(record_id)
        if entity is None:
            raise self._not_found()
        return entity.to_dict()

    # -------------------------------------- writes --------------------------------------
    def create(self, data: dict, files: list[ImageUpload]) -> dict:
        if not files:
            raise BadRequestError("Image is required")
        data = self._prepare_create(dict(data))
        uploaded = self.image_store.upload(files)
        if not uploaded:
            raise BadRequestError("Image is required")
        try:
            with transaction() as session:
                entity = self.repository.create({**data, "image": uploaded}, session=session)
                record = entity.to_dict()
        except Exception:
            self._discard([img["public_id"] for img in uploaded], "failed create")
            raise
        logger.info(f"{self.label} created", extra={"entity": self.label, "record_id": record["id"]})
        return record

    def update(self, record_id: str, patch: dict, files: list[ImageUpload] | None = None) -> dict:
        existing = self.repository.get_active_by_id(record_id)
        if existing is None:
            raise self._not_found()
        patch = self._prepare_update(record_id, dict(patch))
        previous_ids = [img["public_id"] for img in (existing.image or [])]
        uploaded: list[dict] = []
        if files:
            uploaded = self.image_store.upload(files)
            patch["image"] = uploaded
        try:
            with transaction() as session:
                entity = self.repository.update(record_id, patch, session=session)
                if entity is None:
                    raise self._not_found()
                record = entity.to_dict()
        except Exception:
            self._discard([img["public_id"] for img in uploaded], "failed update")
            raise
        if uploaded:
            self._discard(previous_ids, "image replacement")
        logger.info(f"{self.label} updated", extra={"entity": self.label, "record_id": record_id})
        return record

    def soft_delete(self, record_id: str) -> DeleteOutcome:
        before = self.repository.soft_delete(record_id)
        if before is None:
            raise self._not_found()
        return DeleteOutcome(record={**before, "deleted": True}, changed=not before["deleted"])

    def restore(self, record_id: str) -> DeleteOutcome:
        before = self.repository.restore(record_id)
        if before is None:
            raise self._not_found()
        return DeleteOutcome(record={**before, "deleted": False}, changed=bool(before["deleted"]))

    def force_delete(self, record_id: str) -> dict:
        with transaction() as session:
            removed = self.repository.hard_delete(record_id, session=session)
            if removed is None:
                raise self._not_found()
            public_ids = [img["public_id"] for img in removed.get("image") or []]
            if public_ids:
                self.image_store.delete(public_ids)
        logger.info(f"{self.label} force deleted", extra={"entity": self.label, "record_id": record_id})
        return removed


class UserService(RecordService):
    label = "User"

    def __init__(
        self,
        image_store: ImageStore,
        repository: UserRepository | None = None,
        sessions: SessionStore | None = None,
    ):
        super().__init__(repository or UserRepository(), image_store)
        self.sessions = sessions or SessionStore()

    def soft_delete(self, record_id: str) -> DeleteOutcome:
        outcome = super().soft_delete(record_id)
        self.sessions.revoke_user(record_id)
        return outcome

    def force_delete(self, record_id: str) -> dict:
        removed = super().force_delete(record_id)
        self.sessions.revoke_user(record_id)
        return removed

    def _prepare_create(self, data: dict) -> dict:
        password = data.get("password") or ""
        min_length = get_settings().password_min_length
        if len(password) < min_length:
            raise BadRequestError(f"Password must be at least {min_length} characters")
        if self.repository.email_exists(data.get("email") or ""):
            raise BadRequestError("Email is already registered")
        data["password"] = hash_password(password)
        return data

    def _prepare_update(self, record_id: str, patch: dict) -> dict:
        if "email" in patch and self.repository.email_exists(patch["email"], exclude_id=record_id):
            raise BadRequestError("Email is already registered")
        return patch


class InventoryService(RecordService):
    label = "Inventory"

    def __init__(self, image_store: ImageStore, repository: InventoryRepository | None = None):
        super().__init__(repository or InventoryRepository(), image_store)
