from sqlalchemy import Column, String, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from devdocs.models.base_model import BaseModel, Base


class Snippet(BaseModel, Base):
    __tablename__ = "snippets"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    language = Column(String(64), nullable=False)
    code = Column(Text, nullable=False)
    documentation = Column(Text, nullable=False, default="")  # Markdown
    title = Column(String(255), nullable=False, default="")

    user = relationship("User", back_populates="snippets")

    __table_args__ = (
        Index("ix_snippets_user_created", "user_id", "created_at"),
    )
