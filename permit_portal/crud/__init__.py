"""
CRUD operations for the Water Permit Portal
Imports all CRUD classes for easy access
"""

from permit_portal.crud.base import CRUDBase
from permit_portal.crud.crud_user import CRUDUser
from permit_portal.crud.crud_application import CRUDApplication
from permit_portal.crud.crud_permit import CRUDPermit
from permit_portal.crud.crud_inspection import CRUDInspection

# Import CRUD instances
from permit_portal.crud.crud_user import user
from permit_portal.crud.crud_application import crud_application
from permit_portal.crud.crud_permit import crud_permit
from permit_portal.crud.crud_inspection import crud_inspection
