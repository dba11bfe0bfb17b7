"""Read-only catalog of the section variants pages can use."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.controllers.helpers import get_db_session, get_registry
from mosaic.db.services.section_registry import SectionTypeRegistry, section_type_to_dict

router = APIRouter(prefix="/api/section-types", tags=["Section Types"])


@router.get("")
async def list_section_types(
    db_session: AsyncSession = Depends(get_db_session),
    registry: SectionTypeRegistry = Depends(get_registry),
) -> dict:
    definitions = await registry.get_section_types(db_session)
    return {"data": [section_type_to_dict(definition) for definition in definitions]}


@router.get("/{uid}")
async def get_section_type(
    uid: str,
    db_session: AsyncSession = Depends(get_db_session),
    registry: SectionTypeRegistry = Depends(get_registry),
) -> dict:
    definition = await registry.get_section_type(db_session, uid)
    return {"data": section_type_to_dict(definition)}
