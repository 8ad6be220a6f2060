from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from pharmalink.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True)
    # laboratory | pharmacy_owner | animator | pharmacist | technician | advisor | student
    user_type = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
