"""
Lookup Endpoints for the Water Permit Portal
Provides dropdown data from backend enums and the shared status badges
"""

from typing import Dict, List, Optional
from fastapi import APIRouter, HTTPException, Query, status

from permit_portal.models.enums import (
    AccountType, ApplicationType, IdType, InspectionType, ProvinceType, UserRole,
    WaterPurpose, WaterSourceType,
    APPLICATION_TYPE_DISPLAY_NAMES, INSPECTION_TYPE_DISPLAY_NAMES, USER_ROLE_DISPLAY_NAMES,
    WATER_PURPOSE_DISPLAY_NAMES, WATER_SOURCE_DISPLAY_NAMES
)
from permit_portal.schemas.lookup import EnumOption, EnumOptionsResponse, StatusBadge
from permit_portal.services.status_taxonomy import get_status_badge, list_status_badges

router = APIRouter()

# name -> (enum, display names); values without a display name are title-cased
SELECTABLE_ENUMS = {
    "application-types": (ApplicationType, APPLICATION_TYPE_DISPLAY_NAMES),
    "water-sources": (WaterSourceType, WATER_SOURCE_DISPLAY_NAMES),
    "water-purposes": (WaterPurpose, WATER_PURPOSE_DISPLAY_NAMES),
    "inspection-types": (InspectionType, INSPECTION_TYPE_DISPLAY_NAMES),
    "user-roles": (UserRole, USER_ROLE_DISPLAY_NAMES),
    "provinces": (ProvinceType, {}),
    "account-types": (AccountType, {}),
    "id-types": (IdType, {}),
}


def _options(name: str) -> EnumOptionsResponse:
    enum_class, display_names = SELECTABLE_ENUMS[name]
    return EnumOptionsResponse(
        name=name,
        options=[
            EnumOption(value=member.value, label=display_names.get(member, member.value.replace("_", " ").title()))
            for member in enum_class
        ],
    )


@router.get("/enums", response_model=List[EnumOptionsResponse])
async def get_all_enums() -> List[EnumOptionsResponse]:
    """Get every selectable enum in one call"""
    return [_options(name) for name in SELECTABLE_ENUMS]


@router.get("/enums/{name}", response_model=EnumOptionsResponse)
async def get_enum(name: str) -> EnumOptionsResponse:
    if name not in SELECTABLE_ENUMS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown lookup '{name}'"
        )
    return _options(name)


@router.get("/status-badges", response_model=Dict[str, List[StatusBadge]])
async def get_status_badges(
    entity: Optional[str] = Query(None, description="application, permit, inspection, inspection_status or sla")
) -> Dict[str, List[StatusBadge]]:
    """Label and colour category for every known status"""
    return list_status_badges(entity)


@router.get("/status-badges/{entity}/{code}", response_model=StatusBadge)
async def get_single_status_badge(entity: str, code: str) -> StatusBadge:
    """Badge for one status code - unknown codes get the Unknown badge"""
    return get_status_badge(entity, code)
