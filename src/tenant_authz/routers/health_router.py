from __future__ import annotations

from fastapi import APIRouter, Request

from tenant_authz.utils.response import success

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict:
    store = getattr(request.app.state, "role_store", None)
    return success({"ok": True, "role_store": store.name() if store else None}, message="healthy")
