from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from cloudbox.core.database import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Subject id issued by the identity provider
    uid = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    folders = relationship("Folder", back_populates="owner", passive_deletes=True)
    files = relationship("File", back_populates="owner", passive_deletes=True)
