# models/order_status_log.py
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from .base import Base, utcnow
from .order import OrderStatus


class OrderStatusLog(Base):
     """
     Append-only log of fulfilment status changes for an order.
     The latest row mirrors Order.status.
     """
     __tablename__ = "order_status_log"

     id = Column(Integer, primary_key=True, autoincrement=True)
     order_id = Column(
          Integer,
          ForeignKey("orders.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     status = Column(
          Enum(OrderStatus, name="order_log_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          nullable=False
     )
     updated_by = Column(String(100), nullable=False)
     notes = Column(Text, nullable=True)
     created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

     # Relationships
     order = relationship("Order", back_populates="status_log")

     def __repr__(self):
          return f"<OrderStatusLog(id={self.id}, order_id={self.order_id}, status='{self.status.value}')>"
