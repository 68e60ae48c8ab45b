from __future__ import annotations

import json
import math

from fastapi import APIRouter, Depends, File, Form, UploadFile

from shopfront.core.errors import BadRequestError
from shopfront.core.responses import list_message, respond
from shopfront.routers.dependencies import get_inventory_service, read_images, require_admin
from shopfront.services.record_service import InventoryService

router = APIRouter(prefix="/inventories", tags=["inventories"])


def _reject_constant(name: str):
    raise BadRequestError(f"attributes cannot contain {name}")


def _finite_float(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value):
        _reject_constant(raw)
    return value


def _attributes(raw: str | None) -> dict | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw, parse_float=_finite_float, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise BadRequestError("attributes must be valid JSON") from exc
    if not isinstance(value, dict):
        raise BadRequestError("attributes must be an object")
    return value


def _fields(**values) -> dict:
    return {key: value for key, value in values.items() if value is not None}


@router.get("")
def list_inventories(service: InventoryService = Depends(get_inventory_service)):
    data = service.list_active()
    return respond(data, list_message(data, "No Inventories found", "All Inventories retrieved successfully"))


@router.get("/deleted")
def list_deleted_inventories(service: InventoryService = Depends(get_inventory_service)):
    data = service.list_deleted()
    return respond(
        data, list_message(data, "No Deleted Inventories found", "All Deleted Inventories retrieved successfully")
    )


@router.get("/{inventory_id}")
def get_inventory(inventory_id: str, service: InventoryService = Depends(get_inventory_service)):
    return respond(service.get(inventory_id), "Inventory retrieved successfully")


@router.post("", status_code=201)
async def create_inventory(
    name: str = Form(""),
    description: str | None = Form(None),
    quantity: str | None = Form(None),
    price: str | None = Form(None),
    attributes: str | None = Form(None),
    image: list[UploadFile] | None = File(None),
    service: InventoryService = Depends(get_inventory_service),
    _claims: dict = Depends(require_admin),
):
    data = _fields(
        name=name,
        description=description,
        quantity=quantity,
        price=price,
        attributes=_attributes(attributes),
    )
    files = await read_images(image)
    record = service.create(data, files)
    return respond([record], "Inventory created successfully", status=201)


@router.put("/{inventory_id}")
async def update_inventory(
    inventory_id: str,
    name: str | None = Form(None),
    description: str | None = Form(None),
    quantity: str | None = Form(None),
    price: str | None = Form(None),
    attributes: str | None = Form(None),
    image: list[UploadFile] | None = File(None),
    service: InventoryService = Depends(get_inventory_service),
    _claims: dict = Depends(require_admin),
):
    patch = _fields(
        name=name,
        description=description,
        quantity=quantity,
        price=price,
        attributes=_attributes(attributes),
    )
    files = await read_images(image)
    record = service.update(inventory_id, patch, files)
    return respond([record], "Inventory updated successfully")


@router.delete("/{inventory_id}")
def delete_inventory(
    inventory_id: str,
    service: InventoryService = Depends(get_inventory_service),
    _claims: dict = Depends(require_admin),
):
    outcome = service.soft_delete(inventory_id)
    if not outcome.changed:
        return respond([], "Inventory is already deleted")
    return respond([outcome.record], "Inventory deleted successfully")


@router.post("/{inventory_id}/restore")
def restore_inventory(
    inventory_id: str,
    service: InventoryService = Depends(get_inventory_service),
    _claims: dict = Depends(require_admin),
):
    outcome = service.restore(inventory_id)
    if not outcome.changed:
        return respond([], "Inventory is not deleted")
    return respond([outcome.record], "Inventory restored successfully")


@router.delete("/{inventory_id}/force")
def force_delete_inventory(
    inventory_id: str,
    service: InventoryService = Depends(get_inventory_service),
    _claims: dict = Depends(require_admin),
):
    record = service.force_delete(inventory_id)
    return respond([record], "Inventory force deleted successfully")
