"""Schema authoring endpoints: content types and their fields."""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.auth import Authorizer
from mosaic.controllers.helpers import get_authorizer, get_db_session
from mosaic.controllers.schemas import ContentTypeIn, FieldDefinitionIn
from mosaic.db.services import schema_service

router = APIRouter(prefix="/api/content-types", tags=["Content Types"])

logger = logging.getLogger(__name__)


@router.get("")
async def list_content_types(db_session: AsyncSession = Depends(get_db_session)) -> dict:
    content_types = await schema_service.list_content_types(db_session)
    return {"data": [schema_service.content_type_to_dict(ct) for ct in content_types]}


@router.get("/{name}")
async def get_content_type(name: str, db_session: AsyncSession = Depends(get_db_session)) -> dict:
    content_type = await schema_service.get_content_type(db_session, name)
    return {"data": schema_service.content_type_to_dict(content_type)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_content_type(
    body: ContentTypeIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> dict:
    content_type = await schema_service.create_content_type(
        db_session,
        body.name,
        body.display_name,
        authorizer=authorizer,
        singular_name=body.singular_name,
        plural_name=body.plural_name,
        description=body.description,
        fields=[field.model_dump(exclude_none=True) for field in body.fields],
    )
    return {"data": schema_service.content_type_to_dict(content_type)}


@router.post("/{name}/fields", status_code=status.HTTP_201_CREATED)
async def add_field(
    name: str,
    body: FieldDefinitionIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> dict:
    field = await schema_service.add_field(
        db_session, name, body.model_dump(exclude_none=True), authorizer=authorizer
    )
    return {"data": schema_service.field_to_dict(field)}


@router.delete("/{name}/fields/{field_name}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_field(
    name: str,
    field_name: str,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> Response:
    await schema_service.remove_field(db_session, name, field_name, authorizer=authorizer)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content_type(
    name: str,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> Response:
    await schema_service.delete_content_type(db_session, name, authorizer=authorizer)
    logger.info("Content type %s deleted via API", name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
