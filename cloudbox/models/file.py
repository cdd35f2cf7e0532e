from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, BigInteger, Boolean
from sqlalchemy.orm import relationship

from cloudbox.core.database import Base, utcnow


class File(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    # Generated storage name
    name = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size = Column(BigInteger, nullable=False)

    # Blob store key
    path = Column(String, unique=True, nullable=False)

    # Owner relationship
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    owner = relationship("User", back_populates="files")

    folder_id = Column(Integer, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True)

    # Sharing; is_public and share_token are only ever set or cleared together
    is_public = Column(Boolean, default=False, nullable=False)
    share_token = Column(String, unique=True, nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False, index=True)
