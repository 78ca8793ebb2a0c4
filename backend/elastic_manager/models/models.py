"""
Database models for registered elastic applications

An application row carries the platform discriminant; exactly one config row
in the table matching that discriminant references it.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from elastic_manager.db.session import Base


class ApplicationRecord(Base):
    """Registered elastic application"""
    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint("platform IN ('kubernetes', 'opennebula')", name="ck_applications_platform"),
        {"sqlite_autoincrement": True},  # ids are never reused after delete
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    kubernetes_config = relationship(
        "KubernetesConfigRecord", back_populates="application", uselist=False,
        cascade="all, delete-orphan", lazy="selectin"
    )
    opennebula_config = relationship(
        "OpenNebulaConfigRecord", back_populates="application", uselist=False,
        cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self):
        return f"<ApplicationRecord(id={self.id}, platform='{self.platform}')>"


class KubernetesConfigRecord(Base):
    """Kubernetes deployment configuration"""
    __tablename__ = "kubernetes_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    namespace = Column(String(253), nullable=False)
    deployment = Column(String(253), nullable=False)
    kubeconfig = Column(Text, nullable=False)

    application = relationship("ApplicationRecord", back_populates="kubernetes_config")

    def __repr__(self):
        return f"<KubernetesConfigRecord(id={self.id}, namespace='{self.namespace}', deployment='{self.deployment}')>"


class OpenNebulaConfigRecord(Base):
    """OpenNebula VM group role configuration"""
    __tablename__ = "opennebula_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    address = Column(String(500), nullable=False)
    login = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(Integer, nullable=False)
    template = Column(Integer, nullable=False)
    vmgroup = Column(Integer, nullable=False)

    application = relationship("ApplicationRecord", back_populates="opennebula_config")

    def __repr__(self):
        return f"<OpenNebulaConfigRecord(id={self.id}, address='{self.address}', vmgroup={self.vmgroup})>"
