"""Collection lifecycle routes — status, toggle, and direct operations."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from mindful_pulse.api.schemas import CollectResponse, OperationResponse
from mindful_pulse.collection.controller import CollectionController
from mindful_pulse.models import CollectionStatus

router = APIRouter(prefix="/collection", tags=["collection"])


def _controller() -> CollectionController:
    from mindful_pulse.api.server import _controller as controller

    if controller is None:
        raise HTTPException(503, "Collection controller not ready.")
    return controller


@router.get("/status", response_model=CollectionStatus)
async def get_status():
    return _controller().status()


@router.post("/toggle", response_model=CollectionStatus)
async def toggle_collection():
    return await _controller().toggle_collection()


@router.post("/start", response_model=OperationResponse)
async def start_collection():
    controller = _controller()
    ok = await controller.start_collection()
    return OperationResponse(success=ok, status=controller.status())


@router.post("/stop", response_model=OperationResponse)
async def stop_collection():
    controller = _controller()
    ok = await controller.stop_collection()
    return OperationResponse(success=ok, status=controller.status())


@router.post("/collect", response_model=CollectResponse)
async def collect_data():
    controller = _controller()
    result = await controller.collect_data()
    return CollectResponse(result=result, status=controller.status())


@router.post("/sync", response_model=OperationResponse)
async def sync_data():
    controller = _controller()
    ok = await controller.sync_data()
    return OperationResponse(success=ok, status=controller.status())


@router.post("/reconcile", response_model=OperationResponse)
async def reconcile():
    """Force a reconciliation pass, even if automatic retries are suspended."""
    controller = _controller()
    ok = await controller.reconcile(force=True)
    return OperationResponse(success=ok, status=controller.status())
