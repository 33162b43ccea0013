"""
Sales Models Module

SQLAlchemy models for the host shop's sales entities the audit attacher
reads and writes:
- Orders
- Order payments and their gateway transactions
- Order status history
"""

from datetime import datetime, UTC

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class SalesOrder(Base):
    """Model representing a placed order."""

    __tablename__ = "sales_orders"

    id = Column(Integer, primary_key=True)
    increment_id = Column(String(50), nullable=False, index=True)
    base_currency_code = Column(String(3), nullable=False, default="KWD")
    grand_total = Column(String(32), nullable=False, default="0.000")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    payment = relationship(
        "OrderPayment", back_populates="order", uselist=False, lazy="joined"
    )
    status_histories = relationship(
        "OrderStatusHistory",
        back_populates="order",
        order_by="OrderStatusHistory.id",
        cascade="all, delete-orphan",
    )

    def add_status_history(self, history: "OrderStatusHistory") -> "SalesOrder":
        history.order = self
        if history not in self.status_histories:
            self.status_histories.append(history)
        return self

    def add_comment_to_status_history(
        self,
        comment: str,
        status: str | bool = False,
        is_visible_on_front: bool = False,
    ) -> "OrderStatusHistory":
        """Append a comment and return the new history entry."""
        history = OrderStatusHistory(
            comment=comment,
            status=status or None,
            is_customer_notified=None,
            is_visible_on_front=is_visible_on_front,
        )
        self.add_status_history(history)
        return history

    def __repr__(self):
        return f"<SalesOrder(id={self.id}, increment_id={self.increment_id})>"


class OrderPayment(Base):
    """Model representing the payment attached to an order."""

    __tablename__ = "sales_order_payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("sales_orders.id"), nullable=False)
    method = Column(String(64), nullable=False)
    last_trans_id = Column(String(255))
    additional_information = Column(JSON, nullable=False, default=dict)

    order = relationship("SalesOrder", back_populates="payment")
    transactions = relationship(
        "PaymentTransaction",
        back_populates="payment",
        order_by="PaymentTransaction.id",
    )

    def __repr__(self):
        return f"<OrderPayment(id={self.id}, method={self.method})>"


class PaymentTransaction(Base):
    """Model representing a gateway transaction recorded for a payment."""

    __tablename__ = "sales_payment_transactions"

    id = Column(Integer, primary_key=True)
    payment_id = Column(
        Integer, ForeignKey("sales_order_payments.id"), nullable=False, index=True
    )
    txn_id = Column(String(255))
    txn_type = Column(String(32))
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    payment = relationship("OrderPayment", back_populates="transactions")

    def __repr__(self):
        return f"<PaymentTransaction(id={self.id}, txn_id={self.txn_id})>"


class OrderStatusHistory(Base):
    """Model for order status history comments."""

    __tablename__ = "sales_order_status_history"

    id = Column(Integer, primary_key=True)
    order_id = Column(
        Integer, ForeignKey("sales_orders.id"), nullable=False, index=True
    )
    comment = Column(Text)
    status = Column(String(32))
    is_customer_notified = Column(Boolean)
    is_visible_on_front = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    order = relationship("SalesOrder", back_populates="status_histories")

    def __repr__(self):
        return f"<OrderStatusHistory(id={self.id}, order_id={self.order_id})>"
