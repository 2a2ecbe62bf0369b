from sqlalchemy import Column, Integer, String, Boolean
from hmis.db.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(191), unique=True, nullable=False)

    is_active = Column(Boolean, default=True)
    is_doctor = Column(Boolean, default=False, nullable=False)
