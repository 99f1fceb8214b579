"""SQLAlchemy ORM models backing the persistent catalog cache."""

from __future__ import annotations

from sqlalchemy import Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class MovieRow(Base):
    """A cached movie keyed by its remote TMDB id."""

    __tablename__ = "movie_details"
    __table_args__ = (
        Index("idx_movie_favorite", "favorite"),
        Index("idx_movie_popular", "popular"),
        Index("idx_movie_toprated", "toprated"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    title: Mapped[str] = mapped_column(String(512), default="")
    overview: Mapped[str] = mapped_column(Text, default="")
    poster_path: Mapped[str] = mapped_column(String(255), default="")
    release_date: Mapped[str] = mapped_column(String(32), default="")
    vote_average: Mapped[int] = mapped_column(Integer, default=0)
    vote_count: Mapped[int] = mapped_column(Integer, default=0)
    popularity: Mapped[float] = mapped_column(Float, default=0.0)
    original_language: Mapped[str] = mapped_column(String(16), default="")
    favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    popular: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    toprated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class VideoRow(Base):
    """An enriched trailer attached to a movie."""

    __tablename__ = "video_details"
    __table_args__ = (
        Index("idx_video_movie_id", "movie_id"),
        Index("idx_video_trailer", "movie_id", "type"),
    )

    identity: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    movie_id: Mapped[int] = mapped_column(Integer)
    iso_639_1: Mapped[str] = mapped_column(String(16), default="")
    iso_3166_1: Mapped[str] = mapped_column(String(16), default="")
    key: Mapped[str] = mapped_column(String(128), default="")
    site: Mapped[str] = mapped_column(String(64), default="")
    size: Mapped[int] = mapped_column(Integer, default=0)
    type: Mapped[str] = mapped_column(String(64), default="")
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)


class ReviewRow(Base):
    """A review attached to a movie."""

    __tablename__ = "review_details"
    __table_args__ = (Index("idx_review_movie_id", "movie_id"),)

    identity: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    movie_id: Mapped[int] = mapped_column(Integer)
    author: Mapped[str] = mapped_column(String(255), default="")
    content: Mapped[str] = mapped_column(Text, default="")
