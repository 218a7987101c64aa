"""Contract template repository"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import ContractTemplate

MAX_LIST_SIZE = 200


class ContractTemplateRepository:
    @staticmethod
    def list_templates(db: Session, q: Optional[str] = None) -> list[ContractTemplate]:
        query = db.query(ContractTemplate)
        if q and q.strip():
            pattern = f"%{q.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(ContractTemplate.name).like(pattern),
                    func.lower(ContractTemplate.key).like(pattern),
                    func.lower(ContractTemplate.description).like(pattern),
                )
            )
        return query.order_by(ContractTemplate.updated_at.desc(), ContractTemplate.id.desc()).limit(MAX_LIST_SIZE).all()

    @staticmethod
    def get_by_id(db: Session, template_id: int) -> Optional[ContractTemplate]:
        return db.query(ContractTemplate).filter(ContractTemplate.id == template_id).first()

    @staticmethod
    def get_by_key(db: Session, key: str) -> Optional[ContractTemplate]:
        return db.query(ContractTemplate).filter(ContractTemplate.key == key).first()

    @staticmethod
    def create(db: Session, **template_data) -> ContractTemplate:
        template = ContractTemplate(**template_data)
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def update(db: Session, template: ContractTemplate, **updates) -> ContractTemplate:
        for key, value in updates.items():
            setattr(template, key, value)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def delete(db: Session, template: ContractTemplate) -> None:
        db.delete(template)
        db.commit()
