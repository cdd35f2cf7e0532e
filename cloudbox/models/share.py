from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from cloudbox.core.database import Base, utcnow


class Share(Base):
    __tablename__ = "shares"

    id = Column(Integer, primary_key=True, index=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_with_email = Column(String, nullable=False)
    permission = Column(String, nullable=False, default="view")  # view, edit, full
    status = Column(String, nullable=False, default="pending")  # pending, accepted, rejected

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
