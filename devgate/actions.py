"""Action router: one route per (device type, action) in the catalog.

Routes look like ``/actions/{device_type}/{action}?device=<name>``.  Read
actions are ``GET``; actions that change device state are ``POST`` and take
their parameters from the query string or a JSON object body.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import ValidationError

from devgate.auth import get_shared, require_session
from devgate.devices import CATALOG, ActionSpec, DeviceType
from devgate.errors import BadRequest
from devgate.state import SharedState

logger = logging.getLogger(__name__)


def make_router() -> APIRouter:
    router = APIRouter(
        prefix="/actions",
        tags=["actions"],
        dependencies=[Depends(require_session)],
    )

    @router.get("")
    async def list_actions():
        return {
            device_type.value: [
                {
                    "action": spec.name,
                    "method": spec.method,
                    "mutating": spec.mutating,
                    "description": spec.description,
                }
                for spec in specs
            ]
            for device_type, specs in CATALOG.items()
        }

    for device_type, specs in CATALOG.items():
        for spec in specs:
            router.add_api_route(
                f"/{device_type.value}/{spec.name}",
                _make_handler(device_type, spec),
                methods=[spec.method],
                name=f"{device_type.value}:{spec.name}",
                summary=spec.description or None,
            )
    return router


def _make_handler(device_type: DeviceType, spec: ActionSpec) -> Callable:
    async def handler(
        request: Request,
        device: str = Query(..., min_length=1),
        shared: SharedState = Depends(get_shared),
    ):
        params = await _read_params(request, spec)
        result = await shared.invoke_action(device, device_type, spec.name, params)
        if result is None:
            return Response(status_code=200)
        return result

    return handler


async def _read_params(request: Request, spec: ActionSpec) -> dict[str, Any]:
    if spec.params is None:
        return {}

    raw: dict[str, Any] = {k: v for k, v in request.query_params.items() if k != "device"}
    body = await request.body()
    if body:
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise BadRequest(f"Invalid JSON body: {e}")
        if not isinstance(payload, dict):
            raise BadRequest("JSON body must be an object")
        raw.update(payload)

    try:
        return spec.params.model_validate(raw).model_dump()
    except ValidationError as e:
        raise BadRequest(
            f"Invalid parameters for {spec.name}",
            errors=[
                {"loc": list(err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ],
        )
