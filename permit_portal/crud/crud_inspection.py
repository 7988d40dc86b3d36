"""
CRUD operations for Field Inspections
"""

import logging
from typing import Optional, Union, Dict, Any
from sqlalchemy.orm import Query, Session
from sqlalchemy import desc
from datetime import datetime, timezone
import uuid

from permit_portal.crud.base import CRUDBase
from permit_portal.models.inspection import Inspection
from permit_portal.schemas.inspection import InspectionCreate, InspectionUpdate, InspectionFilters

logger = logging.getLogger(__name__)

INSPECTION_NUMBER_PREFIX = "INS"


class CRUDInspection(CRUDBase[Inspection, InspectionCreate, InspectionUpdate]):
    """CRUD operations for Inspections"""

    def generate_inspection_number(self, db: Session, now: Optional[datetime] = None) -> str:
        """Generate unique inspection number: INS-{YYYY}-{SEQUENCE}"""
        now = now or datetime.now(timezone.utc)
        prefix = f"{INSPECTION_NUMBER_PREFIX}-{now.year}"

        with self.store_call(db, "number generation"):
            last = db.query(Inspection).filter(
                Inspection.inspection_number.like(f"{prefix}-%")
            ).order_by(desc(Inspection.inspection_number)).first()

        if last:
            try:
                next_sequence = int(last.inspection_number.split('-')[-1]) + 1
            except (ValueError, IndexError):
                next_sequence = 1
        else:
            next_sequence = 1

        return f"{prefix}-{next_sequence:05d}"

    def create_inspection(
        self,
        db: Session,
        *,
        obj_in: Union[InspectionCreate, Dict[str, Any]],
        inspector_id: uuid.UUID,
        created_by: Optional[uuid.UUID] = None
    ) -> Inspection:
        """Create an inspection record with a generated number"""
        if isinstance(obj_in, dict):
            obj_data = dict(obj_in)
        else:
            obj_data = obj_in.model_dump()
            # Findings go into a JSON column
            obj_data["findings"] = obj_in.findings.model_dump(mode="json") if obj_in.findings else None
        obj_data["inspector_id"] = inspector_id
        obj_data["inspection_number"] = self.generate_inspection_number(db)

        inspection = self.create(db, obj_in=obj_data, created_by=created_by)
        logger.info(f"Created inspection {inspection.inspection_number}")
        return inspection

    def update_inspection(
        self,
        db: Session,
        *,
        db_obj: Inspection,
        obj_in: InspectionUpdate,
        updated_by: Optional[uuid.UUID] = None
    ) -> Inspection:
        update_data = obj_in.model_dump(exclude_unset=True)
        if "findings" in update_data:
            update_data["findings"] = obj_in.findings.model_dump(mode="json") if obj_in.findings else None
        return self.update(db, db_obj=db_obj, obj_in=update_data, updated_by=updated_by)

    def apply_filters(self, query: Query, filters: Optional[InspectionFilters]) -> Query:
        if filters is None:
            return query

        if filters.status:
            query = query.filter(Inspection.status.in_(filters.status))
        if filters.compliance_status:
            query = query.filter(Inspection.compliance_status.in_(filters.compliance_status))
        if filters.application_id:
            query = query.filter(Inspection.application_id == filters.application_id)
        if filters.permit_id:
            query = query.filter(Inspection.permit_id == filters.permit_id)
        if filters.inspector_id:
            query = query.filter(Inspection.inspector_id == filters.inspector_id)
        return query


crud_inspection = CRUDInspection(Inspection)
