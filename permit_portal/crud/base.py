import logging
from contextlib import contextmanager
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import desc
from sqlalchemy.exc import (
    DataError, DisconnectionError, IntegrityError, InterfaceError,
    OperationalError, SQLAlchemyError, StatementError
)
from sqlalchemy.orm import Query, Session

from permit_portal.core.exceptions import (
    RecordNotFoundError, RecordStoreError, RecordTransportError, RecordValidationError
)
from permit_portal.models.base import BaseModel as DBBaseModel

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=DBBaseModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base class for CRUD operations on a SQLAlchemy model.

    Every store call runs inside `store_call`, which rolls the session back
    and re-raises driver failures as RecordStoreError subclasses.
    """
    def __init__(self, model: Type[ModelType]):
        """
        Initialize with SQLAlchemy model class.
        """
        self.model = model
        self.resource = model.__name__

    @contextmanager
    def store_call(self, db: Session, operation: str):
        """
        Translate SQLAlchemy failures into the record store error taxonomy.
        """
        try:
            yield
        except RecordStoreError:
            raise
        except (IntegrityError, DataError) as e:
            db.rollback()
            logger.warning(f"{self.resource} {operation} rejected by store: {e.orig}")
            raise RecordValidationError(f"{self.resource} {operation} rejected: {e.orig}", resource=self.resource) from e
        except (OperationalError, InterfaceError, DisconnectionError) as e:
            db.rollback()
            logger.error(f"{self.resource} {operation} failed, store unreachable: {e}")
            raise RecordTransportError(f"Record store unavailable during {self.resource} {operation}", resource=self.resource) from e
        except StatementError as e:
            # Value could not be bound (e.g. unknown enum value)
            db.rollback()
            raise RecordValidationError(f"Invalid {self.resource} data: {e.orig}", resource=self.resource) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"{self.resource} {operation} failed: {e}")
            raise RecordStoreError(f"{self.resource} {operation} failed", resource=self.resource) from e

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """
        Get a record by ID.
        """
        with self.store_call(db, "get"):
            return db.query(self.model).filter(self.model.id == id).first()

    def get_or_404(self, db: Session, id: Any) -> ModelType:
        """
        Get a record by ID or raise RecordNotFoundError.
        """
        obj = self.get(db, id)
        if obj is None:
            raise RecordNotFoundError(self.resource, id)
        return obj

    def apply_filters(self, query: Query, filters: Optional[BaseModel]) -> Query:
        """
        Narrow a query by a filter schema. Subclasses override.
        """
        return query

    def default_order(self) -> list:
        return [desc(self.model.created_at)]

    def get_multi(
        self, db: Session, *, filters: Optional[BaseModel] = None, skip: int = 0, limit: int = 100
    ) -> List[ModelType]:
        """
        Get multiple records, newest first, with pagination.
        """
        with self.store_call(db, "list"):
            query = self.apply_filters(db.query(self.model), filters)
            return query.order_by(*self.default_order()).offset(skip).limit(limit).all()

    def count(self, db: Session, *, filters: Optional[BaseModel] = None) -> int:
        with self.store_call(db, "count"):
            return self.apply_filters(db.query(self.model), filters).count()

    def get_all(self, db: Session, *, filters: Optional[BaseModel] = None) -> List[ModelType]:
        """
        Get all matching records without pagination (dashboard aggregation).
        """
        with self.store_call(db, "list"):
            return self.apply_filters(db.query(self.model), filters).all()

    def create(
        self,
        db: Session,
        *,
        obj_in: Union[CreateSchemaType, Dict[str, Any]],
        created_by: Optional[Any] = None
    ) -> ModelType:
        """
        Create a new record.
        """
        obj_in_data = dict(obj_in) if isinstance(obj_in, dict) else obj_in.model_dump()
        if created_by:
            obj_in_data['created_by'] = created_by
            obj_in_data['updated_by'] = created_by
        with self.store_call(db, "create"):
            try:
                db_obj = self.model(**obj_in_data)  # type: ignore
            except TypeError as e:
                raise RecordValidationError(str(e), resource=self.resource) from e
            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        updated_by: Optional[Any] = None
    ) -> ModelType:
        """
        Update a record. Only fields present in obj_in are touched.
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        columns = set(self.model.__table__.columns.keys())
        unknown = set(update_data) - columns
        if unknown:
            raise RecordValidationError(f"Unknown {self.resource} fields: {', '.join(sorted(unknown))}", resource=self.resource)

        for field, value in update_data.items():
            setattr(db_obj, field, value)

        if updated_by:
            db_obj.updated_by = updated_by

        with self.store_call(db, "update"):
            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
        return db_obj

    def update_by_id(
        self,
        db: Session,
        *,
        id: Any,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        updated_by: Optional[Any] = None
    ) -> ModelType:
        """
        Update a record by ID, raising RecordNotFoundError when missing.
        """
        db_obj = self.get_or_404(db, id)
        return self.update(db, db_obj=db_obj, obj_in=obj_in, updated_by=updated_by)

    def remove(self, db: Session, *, id: Any) -> bool:
        """
        Remove a record by ID. Returns False when nothing was deleted.
        """
        with self.store_call(db, "delete"):
            obj = db.get(self.model, id)
            if obj is None:
                return False
            db.delete(obj)
            db.commit()
        return True

    def get_by_field(self, db: Session, field_name: str, value: Any) -> Optional[ModelType]:
        """
        Get a record by a specific field value.
        """
        with self.store_call(db, "get"):
            return db.query(self.model).filter(getattr(self.model, field_name) == value).first()
