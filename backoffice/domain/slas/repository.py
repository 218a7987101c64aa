"""SLA contract repository - Database operations for contracts and signature invites"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import SignatureInvite, SlaContract, User

MAX_LIST_SIZE = 500


class SlaRepository:
    """Repository for SLA contract database operations"""

    @staticmethod
    def list_contracts(
        db: Session,
        account_id: Optional[int] = None,
        status: Optional[str] = None,
        contract_type: Optional[str] = None,
    ) -> list[SlaContract]:
        query = db.query(SlaContract)
        if account_id is not None:
            query = query.filter(SlaContract.account_id == account_id)
        if status:
            query = query.filter(SlaContract.status == status)
        if contract_type:
            query = query.filter(SlaContract.type == contract_type)
        # Contracts without an end date sort last
        return (
            query.order_by(SlaContract.end_date.is_(None), SlaContract.end_date.asc(), SlaContract.id.asc())
            .limit(MAX_LIST_SIZE)
            .all()
        )

    @staticmethod
    def list_for_accounts(db: Session, account_ids: list[int]) -> list[SlaContract]:
        return db.query(SlaContract).filter(SlaContract.account_id.in_(account_ids)).all()

    @staticmethod
    def get_by_id(db: Session, contract_id: int) -> Optional[SlaContract]:
        return db.query(SlaContract).filter(SlaContract.id == contract_id).first()

    @staticmethod
    def get_descendants(db: Session, root_id: int) -> list[SlaContract]:
        """All descendants of a root contract, breadth first"""
        found = []
        frontier = [root_id]
        while frontier:
            children = db.query(SlaContract).filter(SlaContract.parent_contract_id.in_(frontier)).all()
            found.extend(children)
            frontier = [child.id for child in children]
        return found

    @staticmethod
    def create(db: Session, **contract_data) -> SlaContract:
        contract = SlaContract(**contract_data)
        db.add(contract)
        db.commit()
        db.refresh(contract)
        return contract

    @staticmethod
    def save(db: Session, contract: SlaContract) -> SlaContract:
        db.commit()
        db.refresh(contract)
        return contract

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def delete(db: Session, contract: SlaContract) -> None:
        # Amendments keep existing without their parent
        db.query(SlaContract).filter(SlaContract.parent_contract_id == contract.id).update(
            {SlaContract.parent_contract_id: None}, synchronize_session=False
        )
        # A discarded amendment frees its parent for a new one
        db.query(SlaContract).filter(SlaContract.superseded_by_id == contract.id).update(
            {SlaContract.superseded_by_id: None}, synchronize_session=False
        )
        db.delete(contract)
        db.commit()

    # ========================================================================
    # Signature invites
    # ========================================================================

    @staticmethod
    def get_invite_by_token(db: Session, token: str) -> Optional[SignatureInvite]:
        return db.query(SignatureInvite).filter(SignatureInvite.token == token).first()

    @staticmethod
    def list_invites(db: Session, contract_id: int) -> list[SignatureInvite]:
        return (
            db.query(SignatureInvite)
            .filter(SignatureInvite.contract_id == contract_id)
            .order_by(SignatureInvite.id.desc())
            .all()
        )

    @staticmethod
    def cancel_pending_invites(db: Session, contract_id: int, role: str) -> int:
        return (
            db.query(SignatureInvite)
            .filter(
                SignatureInvite.contract_id == contract_id,
                SignatureInvite.role == role,
                SignatureInvite.status == "pending",
            )
            .update({SignatureInvite.status: "cancelled"}, synchronize_session=False)
        )

    @staticmethod
    def create_invite(db: Session, **invite_data) -> SignatureInvite:
        invite = SignatureInvite(**invite_data)
        db.add(invite)
        db.commit()
        db.refresh(invite)
        return invite

    @staticmethod
    def expire_stale_invites(db: Session, now: datetime) -> int:
        count = (
            db.query(SignatureInvite)
            .filter(
                SignatureInvite.status == "pending",
                SignatureInvite.expires_at.isnot(None),
                SignatureInvite.expires_at < now,
            )
            .update({SignatureInvite.status: "expired"}, synchronize_session=False)
        )
        db.commit()
        return count
