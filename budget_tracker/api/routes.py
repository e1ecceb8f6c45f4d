"""
Record Routes

One router per collection, built from the same factory so budgets and
expenses answer identically:

    GET    /api/<collection>        200 + array
    GET    /api/<collection>/{id}   200 + object | 404
    POST   /api/<collection>        201 + object + Location
    PUT    /api/<collection>/{id}   204 | 404
    DELETE /api/<collection>/{id}   204 | 404

Bodies use the stored camelCase document shape.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from budget_tracker.audit import create_correlation_id
from budget_tracker.auth import CallerIdentity, resolve_caller
from budget_tracker.orchestrator import AppComponents, RecordFlow


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_caller(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> CallerIdentity:
    """Resolve the caller; AuthenticationError becomes a 401."""
    return resolve_caller(authorization, request.app.state.app_settings.auth_required)


def get_correlation_id() -> UUID:
    return create_correlation_id()


def not_found(entity_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": f"{entity_type.capitalize()} not found"},
    )


def build_record_router(
    collection: str,
    entity_type: str,
    payload_type: type[BaseModel],
) -> APIRouter:
    """
    Build the CRUD router for one collection.

    Args:
        collection: URL segment and AppComponents attribute ("budgets")
        entity_type: Singular name used in route names and messages
        payload_type: Model validating create/update bodies
    """
    router = APIRouter(prefix=f"/api/{collection}", tags=[collection])
    get_route_name = f"get_{entity_type}"

    def get_flow(components: AppComponents = Depends(get_components)) -> RecordFlow:
        return getattr(components, collection)

    @router.get("", name=f"list_{collection}")
    async def list_records(
        flow: RecordFlow = Depends(get_flow),
        caller: CallerIdentity = Depends(get_caller),
        correlation_id: UUID = Depends(get_correlation_id),
    ):
        records = await flow.list_records(caller.owner_id, correlation_id)
        return JSONResponse(content=[record.to_document() for record in records])

    @router.get("/{record_id}", name=get_route_name)
    async def get_record(
        record_id: str,
        flow: RecordFlow = Depends(get_flow),
        caller: CallerIdentity = Depends(get_caller),
        correlation_id: UUID = Depends(get_correlation_id),
    ):
        record = await flow.get(record_id, caller.owner_id, correlation_id)
        if record is None:
            return not_found(entity_type)
        return JSONResponse(content=record.to_document())

    @router.post("", name=f"create_{entity_type}", status_code=status.HTTP_201_CREATED)
    async def create_record(
        request: Request,
        payload: payload_type,
        flow: RecordFlow = Depends(get_flow),
        caller: CallerIdentity = Depends(get_caller),
        correlation_id: UUID = Depends(get_correlation_id),
    ):
        created = await flow.create(payload, caller.owner_id, correlation_id)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=created.to_document(),
            headers={"Location": str(request.url_for(get_route_name, record_id=created.id))},
        )

    @router.put("/{record_id}", name=f"update_{entity_type}")
    async def update_record(
        record_id: str,
        payload: payload_type,
        flow: RecordFlow = Depends(get_flow),
        caller: CallerIdentity = Depends(get_caller),
        correlation_id: UUID = Depends(get_correlation_id),
    ):
        if not await flow.update(record_id, payload, caller.owner_id, correlation_id):
            return not_found(entity_type)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.delete("/{record_id}", name=f"delete_{entity_type}")
    async def delete_record(
        record_id: str,
        flow: RecordFlow = Depends(get_flow),
        caller: CallerIdentity = Depends(get_caller),
        correlation_id: UUID = Depends(get_correlation_id),
    ):
        if not await flow.delete(record_id, caller.owner_id, correlation_id):
            return not_found(entity_type)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
