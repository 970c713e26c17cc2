# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Profile store tables.

Students, teachers, guardians and the records hanging off them. Schools,
classes and sections live in other services, so their ids are stored as
plain UUID columns without foreign keys.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import (
    Base,
    JSONType,
    TimestampMixin,
    UUIDType,
    new_id,
)
from src.models.profile import ApplicationStatus
from src.utils.datetime import utc_now


class Student(Base, TimestampMixin):
    """Student profile.

    Lives as a PENDING application until accepted. ACCEPTED students always
    reference an identity in the identity service, other states never do.
    """

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("school_id", "admission_number", name="uq_students_school_admission_number"),
        CheckConstraint(
            "(status = 'ACCEPTED') = (external_identity_id IS NOT NULL)",
            name="ck_students_identity_matches_status",
        ),
        Index("ix_students_school_status", "school_id", "status"),
    )

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=new_id)
    school_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    external_identity_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    admission_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[ApplicationStatus] = mapped_column(
        SAEnum(ApplicationStatus, native_enum=False, length=20, name="application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    admission_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    date_of_birth: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    blood_group: Mapped[str | None] = mapped_column(String(10), nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    religion: Mapped[str | None] = mapped_column(String(50), nullable=True)
    profile_photo: Mapped[str | None] = mapped_column(String(500), nullable=True)
    address: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    contact_info: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    meta_data: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )

    guardian_links: Mapped[list[StudentGuardian]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    enrollments: Mapped[list[StudentEnrollment]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StudentEnrollment.from_date",
    )
    documents: Mapped[list[Document]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
        foreign_keys="Document.student_id",
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, status={self.status})>"


class Guardian(Base, TimestampMixin):
    """Guardian contact, shareable between students of one school."""

    __tablename__ = "guardians"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=new_id)
    school_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    student_links: Mapped[list[StudentGuardian]] = relationship(
        back_populates="guardian",
        passive_deletes=True,
    )


class StudentGuardian(Base):
    """Link between a student and a guardian, tagged with the relation."""

    __tablename__ = "student_guardians"
    __table_args__ = (
        UniqueConstraint("student_id", "guardian_id", name="uq_student_guardians_pair"),
    )

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    guardian_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("guardians.id", ondelete="CASCADE"), nullable=False, index=True
    )
    relation: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    student: Mapped[Student] = relationship(back_populates="guardian_links")
    guardian: Mapped[Guardian] = relationship(back_populates="student_links")


class StudentEnrollment(Base, TimestampMixin):
    """Class/section placement of a student for an academic year."""

    __tablename__ = "student_enrollments"
    __table_args__ = (
        # At most one current enrollment per student.
        Index(
            "uq_student_enrollments_current",
            "student_id",
            unique=True,
            postgresql_where=text("is_current"),
        ),
    )

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    school_id: Mapped[str] = mapped_column(UUIDType, nullable=False)
    class_id: Mapped[str] = mapped_column(UUIDType, nullable=False)
    section_id: Mapped[str] = mapped_column(UUIDType, nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    roll_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    from_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    to_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    student: Mapped[Student] = relationship(back_populates="enrollments")


class Teacher(Base, TimestampMixin):
    """Teacher profile. Always backed by an identity."""

    __tablename__ = "teachers"
    __table_args__ = (
        UniqueConstraint("school_id", "employee_id", name="uq_teachers_school_employee_id"),
    )

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=new_id)
    school_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    external_identity_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    blood_group: Mapped[str | None] = mapped_column(String(10), nullable=True)
    marital_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    religion: Mapped[str | None] = mapped_column(String(50), nullable=True)
    qualifications: Mapped[str | None] = mapped_column(Text, nullable=True)
    experience_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    joining_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    salary: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    address: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    subject_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    meta_data: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )

    documents: Mapped[list[Document]] = relationship(
        back_populates="teacher",
        cascade="all, delete-orphan",
        passive_deletes=True,
        foreign_keys="Document.teacher_id",
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Teacher(id={self.id}, employee_id={self.employee_id})>"


class Document(Base):
    """Metadata of a stored document owned by exactly one student or teacher."""

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(
            "(student_id IS NULL) <> (teacher_id IS NULL)",
            name="ck_documents_single_owner",
        ),
    )

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=new_id)
    school_id: Mapped[str] = mapped_column(UUIDType, nullable=False)
    student_id: Mapped[str | None] = mapped_column(
        UUIDType, ForeignKey("students.id", ondelete="CASCADE"), nullable=True, index=True
    )
    teacher_id: Mapped[str | None] = mapped_column(
        UUIDType, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    uploaded_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    student: Mapped[Student | None] = relationship(
        back_populates="documents", foreign_keys=[student_id]
    )
    teacher: Mapped[Teacher | None] = relationship(
        back_populates="documents", foreign_keys=[teacher_id]
    )
