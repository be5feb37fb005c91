from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from feeledger.db import Base


class Upload(Base):
    __tablename__ = "uploads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String, nullable=False)
    file_name = Column(String, nullable=False)  # Name on disk under UPLOAD_DIR
    original_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
