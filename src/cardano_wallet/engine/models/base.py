"""Declarative base and the column mixins shared by the ledger tables."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    type_annotation_map = {  # noqa: RUF012
        dict[str, Any]: JSON,
        list[dict[str, Any]]: JSON,
        list[dict[str, str]]: JSON,
    }


class TimestampMixin:
    """Row created / updated timestamps, set by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class WalletScopedMixin:
    """Ledger rows owned by one wallet and stamped by the sync that wrote them.

    ``wallet_id`` is always the leading primary-key column, so identity
    tuples read ``(wallet_id, ...)``.
    """

    wallet_id: Mapped[str] = mapped_column(
        String(64), primary_key=True, sort_order=-10, comment="Owning wallet ID"
    )
    last_synced: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, sort_order=10
    )


class MetadataMixin:
    """Free-form JSON metadata, stored in the ``metadata`` column."""

    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
