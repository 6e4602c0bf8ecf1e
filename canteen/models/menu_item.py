from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Numeric, String, Text

from canteen.core.database import Base
from canteen.models._time import utcnow


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (Index("ix_menu_items_category", "category"),)

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(20), nullable=False)  # snacks / meals / beverages / desserts
    image_url = Column(String, nullable=True)
    available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
