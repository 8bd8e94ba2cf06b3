# logstore/models.py
from sqlalchemy import Column, DateTime, Integer, String, Text

from logstore.db import Base


class LogRecordRow(Base):
    __tablename__ = "log_records"
    # AUTOINCREMENT keeps SQLite from ever handing out a previously used rowid
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(36), index=True, nullable=False)
    data_json = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), index=True, nullable=False)
