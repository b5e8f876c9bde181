from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.adminpanel.models import Base


class InstalledModule(Base):
    __tablename__ = "installed_modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon_path: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # "system" | "user"
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default="user")
    # "active" | "inactive"
    state: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    admin_capable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    link: Mapped["AdminModuleLink | None"] = relationship(
        back_populates="module",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )


class AdminModuleLink(Base):
    """
    Module -> admin category assignment.

    category_id has no foreign key: deleting a category leaves the
    link dangling and readers resolve it to the default category.
    """

    __tablename__ = "admin_module_links"

    module_id: Mapped[int] = mapped_column(ForeignKey("installed_modules.id", ondelete="CASCADE"), primary_key=True)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    module: Mapped[InstalledModule] = relationship(back_populates="link", lazy="selectin")
