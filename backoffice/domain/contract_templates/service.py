"""Contract template service - keys are unique, bodies are sanitised on write"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ContractTemplate
from ...utils.sanitization import clean_optional, sanitize_html
from .repository import ContractTemplateRepository
from .schemas import ContractTemplateCreate, ContractTemplateUpdate

logger = logging.getLogger(__name__)


class ContractTemplateService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ContractTemplateRepository()

    def list_templates(self, q: Optional[str] = None) -> list[ContractTemplate]:
        return self.repo.list_templates(self.db, q)

    def get_template(self, template_id: int) -> ContractTemplate:
        template = self.repo.get_by_id(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="not_found")
        return template

    def get_by_key(self, key: str) -> ContractTemplate:
        template = self.repo.get_by_key(self.db, key)
        if not template:
            raise HTTPException(status_code=404, detail="template_not_found")
        return template

    def create_template(self, data: ContractTemplateCreate) -> ContractTemplate:
        key = data.key.strip()
        if self.repo.get_by_key(self.db, key):
            raise HTTPException(status_code=409, detail="duplicate_key")
        template = self.repo.create(
            self.db,
            key=key,
            name=data.name.strip(),
            description=clean_optional(data.description),
            html_body=sanitize_html(data.htmlBody),
        )
        logger.info(f"📝 Contract template '{template.key}' created")
        return template

    def update_template(self, template_id: int, data: ContractTemplateUpdate) -> ContractTemplate:
        template = self.get_template(template_id)
        payload = data.model_dump(exclude_unset=True)
        updates = {}
        if payload.get("key"):
            key = payload["key"].strip()
            existing = self.repo.get_by_key(self.db, key)
            if existing and existing.id != template.id:
                raise HTTPException(status_code=409, detail="duplicate_key")
            updates["key"] = key
        if payload.get("name"):
            updates["name"] = payload["name"].strip()
        if "description" in payload:
            updates["description"] = clean_optional(payload["description"])
        if payload.get("htmlBody"):
            updates["html_body"] = sanitize_html(payload["htmlBody"])
        return self.repo.update(self.db, template, **updates)

    def delete_template(self, template_id: int) -> dict:
        template = self.get_template(template_id)
        self.repo.delete(self.db, template)
        return {"ok": True}
