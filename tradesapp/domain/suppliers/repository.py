"""Supplier repository - Database operations for suppliers"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Supplier


class SupplierRepository:
    """Repository for supplier database operations"""

    @staticmethod
    def get_suppliers(db: Session, user_id: str, include_inactive: bool = False) -> list[Supplier]:
        query = db.query(Supplier).filter(Supplier.user_id == user_id)
        if not include_inactive:
            query = query.filter(Supplier.is_active.is_(True))
        return query.order_by(Supplier.name).all()

    @staticmethod
    def get_supplier_by_id(db: Session, supplier_id: str, user_id: str) -> Optional[Supplier]:
        return (
            db.query(Supplier)
            .filter(Supplier.id == supplier_id, Supplier.user_id == user_id)
            .first()
        )

    @staticmethod
    def create_supplier(db: Session, user_id: str, **supplier_data) -> Supplier:
        supplier = Supplier(user_id=user_id, **supplier_data)
        db.add(supplier)
        db.commit()
        db.refresh(supplier)
        return supplier

    @staticmethod
    def update_supplier(db: Session, supplier: Supplier, **updates) -> Supplier:
        for key, value in updates.items():
            if hasattr(supplier, key):
                setattr(supplier, key, value)

        db.commit()
        db.refresh(supplier)
        return supplier

    @staticmethod
    def delete_supplier(db: Session, supplier: Supplier) -> None:
        db.delete(supplier)
        db.commit()
