from devdocs.models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    # The single refresh token currently honored for this user (NULL = logged out)
    refresh_token = Column(Text, nullable=True)
    # SHA-256 digest of the emailed reset token; set and cleared with the expiry
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)

    snippets = relationship(
        "Snippet",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def clear_reset_token(self):
        self.reset_password_token = None
        self.reset_password_expires = None
