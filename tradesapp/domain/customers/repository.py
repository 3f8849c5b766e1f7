"""Customer repository - Database operations for customers"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Customer


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_customers(db: Session, user_id: str) -> list[Customer]:
        """Get all customers for a user"""
        return db.query(Customer).filter(Customer.user_id == user_id).order_by(Customer.name).all()

    @staticmethod
    def get_customer_by_id(db: Session, customer_id: str, user_id: str) -> Optional[Customer]:
        return (
            db.query(Customer)
            .filter(Customer.id == customer_id, Customer.user_id == user_id)
            .first()
        )

    @staticmethod
    def create_customer(db: Session, user_id: str, **customer_data) -> Customer:
        customer = Customer(user_id=user_id, **customer_data)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    @staticmethod
    def update_customer(db: Session, customer: Customer, **updates) -> Customer:
        """Update a customer with provided fields"""
        for key, value in updates.items():
            if hasattr(customer, key):
                setattr(customer, key, value)

        db.commit()
        db.refresh(customer)
        return customer

    @staticmethod
    def delete_customer(db: Session, customer: Customer) -> None:
        db.delete(customer)
        db.commit()
