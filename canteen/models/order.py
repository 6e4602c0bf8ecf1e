from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from canteen.core.database import Base
from canteen.models._time import utcnow


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    # Fixed at checkout: sum of order_items.price * quantity
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)

    status = Column(String(20), nullable=False, default="pending", index=True)  # pending / preparing / ready / completed / cancelled
    pickup_location = Column(String(40), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User")
    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
