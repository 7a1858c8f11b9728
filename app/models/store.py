import enum
import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, Boolean, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class InstallState(str, enum.Enum):
    pending = "pending"
    installed = "installed"
    uninstalled = "uninstalled"


class Store(Base):
    """
    One merchant installation; the unit of data isolation.
    Never hard-deleted here: uninstall flips install_state / is_active.
    """
    __tablename__ = "stores"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)

    # e.g. "mystore.myshopify.com"
    shopify_domain: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    custom_domain: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Downstream credentials: stored, never returned by the API
    shopify_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    storefront_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    shopify_scopes: Mapped[str | None] = mapped_column(Text, nullable=True)

    install_state: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InstallState.pending.value,
    )
    installed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    uninstalled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    @property
    def is_usable(self) -> bool:
        return self.is_active and self.install_state == InstallState.installed.value

    def __repr__(self) -> str:
        return f"<Store id={self.id} shop={self.shopify_domain} state={self.install_state}>"
