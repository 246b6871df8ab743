from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdType = BigInteger().with_variant(Integer(), "sqlite")
MAX_ID = 2**63 - 1


class Base(DeclarativeBase):
    def update_from_dict(self, data: Dict[str, Any], exclude: Optional[Iterable[str]] = None) -> None:
        """Set every column attribute named in ``data``; keys not present are left alone."""
        exclude = set(exclude or ())
        columns = {c.key for c in self.__table__.columns}
        for key, value in data.items():
            if key in columns and key not in exclude:
                setattr(self, key, value)


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    questions: Mapped[List["Question"]] = relationship(
        back_populates="subject", cascade="all, delete-orphan"
    )


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("idx_questions_subject", "subject_id"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    subject_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    subject: Mapped["Subject"] = relationship(back_populates="questions")
    contents: Mapped[List["Content"]] = relationship(
        back_populates="question", cascade="all, delete-orphan", order_by="Content.id"
    )
    tags: Mapped[List["TagMetaData"]] = relationship(
        back_populates="question", cascade="all, delete-orphan", order_by="TagMetaData.id"
    )


class Content(Base):
    __tablename__ = "contents"
    __table_args__ = (
        Index("idx_contents_question", "question_id"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    question_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    content_type: Mapped[str] = mapped_column(String(50), nullable=False, default="text")
    value: Mapped[str] = mapped_column(Text, nullable=False)

    question: Mapped["Question"] = relationship(back_populates="contents")


class TagMetaData(Base):
    __tablename__ = "tag_meta_data"
    __table_args__ = (
        Index("idx_tmd_question", "question_id"),
        Index("idx_tmd_key_value", "key", "value"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    question_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)

    question: Mapped["Question"] = relationship(back_populates="tags")
