# certdesk/crud/base.py
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from certdesk.core.errors import CertdeskError
from certdesk.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)

class CRUDBase(Generic[ModelType]):
    """Operações comuns por id; `not_found` é a exceção de domínio do modelo."""

    not_found: Type[CertdeskError] = CertdeskError

    def __init__(self, model: Type[ModelType]): self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def get_or_404(self, db: Session, id: Any) -> ModelType:
        obj = self.get(db, id)
        if obj is None:
            raise self.not_found(f"{self.model.__name__} not found", details={"id": id})
        return obj

    def create(self, db: Session, data: Dict[str, Any]) -> ModelType:
        obj = self.model(**data)
        db.add(obj); db.commit(); db.refresh(obj)
        return obj

    def update(self, db: Session, db_obj: ModelType, data: Dict[str, Any]) -> ModelType:
        for f, v in data.items(): setattr(db_obj, f, v)
        db.add(db_obj); db.commit(); db.refresh(db_obj)
        return db_obj

    def remove(self, db: Session, db_obj: ModelType) -> None:
        db.delete(db_obj); db.commit()
