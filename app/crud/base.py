"""
CRUD base para los catálogos administrables (niveles, categorías) y búsquedas por ID.
"""
from typing import Generic, TypeVar, Type, Optional, Any, Dict, Union
from sqlalchemy.orm import Session
from pydantic import BaseModel
from app.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)

Changes = Union[BaseModel, Dict[str, Any]]


def _as_dict(obj_in: Changes, partial: bool) -> Dict[str, Any]:
    if isinstance(obj_in, dict):
        return obj_in
    return obj_in.model_dump(exclude_unset=partial)


class CRUDBase(Generic[ModelType]):
    """Operaciones por ID sobre un modelo ORM. Cada escritura hace commit."""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def _save(self, db: Session, db_obj: ModelType) -> ModelType:
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def create(self, db: Session, *, obj_in: Changes) -> ModelType:
        """
        Crear un registro a partir de un schema o un dict de columnas.
        """
        return self._save(db, self.model(**_as_dict(obj_in, partial=False)))

    def update(self, db: Session, *, db_obj: ModelType, obj_in: Changes) -> ModelType:
        """
        Aplicar cambios parciales. Con un schema solo se aplican los campos
        enviados; las claves que no son columnas del modelo se ignoran.
        """
        for field, value in _as_dict(obj_in, partial=True).items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        return self._save(db, db_obj)

    def delete(self, db: Session, *, db_obj: ModelType) -> None:
        db.delete(db_obj)
        db.commit()
