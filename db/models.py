from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

ROLE_PEMBELI = "PEMBELI"
ROLE_PETANI = "PETANI"
ROLE_ADMIN = "ADMIN"
ROLES = (ROLE_PEMBELI, ROLE_PETANI, ROLE_ADMIN)

APPLICATION_STATUSES = ("PENDING", "UNDER_REVIEW", "APPROVED", "REJECTED")
PROYEK_STATUSES = ("PERSIAPAN", "PENANAMAN", "PERAWATAN", "PANEN", "SELESAI")
ACTIVE_PROYEK_STATUSES = ("PENANAMAN", "PERAWATAN", "PANEN")
PRODUK_STATUSES = ("TERSEDIA", "PREORDER", "HABIS")
CS_MESSAGE_STATUSES = ("UNREAD", "READ", "REPLIED")


def _in_clause(column: str, values: tuple) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String)
    username = Column(String, unique=True, nullable=True, index=True)
    password_hash = Column(Text)
    provider = Column(String)
    email_verified = Column(DateTime(timezone=True))
    role = Column(String, nullable=False, default=ROLE_PEMBELI)
    bio = Column(Text)
    lokasi = Column(String)
    link_whatsapp = Column(String)
    image = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(_in_clause("role", ROLES), name="ck_users_role"),
    )

    # Relationships
    petani_application = relationship(
        "PetaniApplication",
        back_populates="user",
        uselist=False,
        foreign_keys="PetaniApplication.user_id",
        cascade="all, delete-orphan",
    )
    proyek_tani = relationship("ProyekTani", back_populates="petani", cascade="all, delete-orphan")
    likes = relationship("Like", back_populates="user", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="user", cascade="all, delete-orphan")
    cs_messages = relationship("CsMessage", back_populates="user", cascade="all, delete-orphan")
    profile_views = relationship(
        "ProfileView",
        back_populates="petani",
        foreign_keys="ProfileView.petani_id",
        cascade="all, delete-orphan",
    )


class PetaniApplication(Base):
    __tablename__ = "petani_applications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    nama = Column(String, nullable=False)
    username = Column(String, nullable=False)
    email = Column(String, nullable=False)
    bio = Column(Text, nullable=False)
    lokasi = Column(String, nullable=False)
    link_whatsapp = Column(String, nullable=False)
    alasan_menjadi = Column(Text, nullable=False)
    pengalaman_bertani = Column(Text, nullable=False)
    jenis_komoditas = Column(String, nullable=False)
    luas_lahan = Column(String, nullable=False)
    lokasi_lahan = Column(Text, nullable=False)
    foto_profil = Column(Text)
    foto_ktp = Column(Text, nullable=False)
    sertifikat_lahan = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="PENDING")
    admin_notes = Column(Text)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(_in_clause("status", APPLICATION_STATUSES), name="ck_petani_applications_status"),
    )

    user = relationship("User", back_populates="petani_application", foreign_keys=[user_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])


class ProyekTani(Base):
    __tablename__ = "proyek_tani"

    id = Column(Integer, primary_key=True, index=True)
    petani_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    nama_proyek = Column(String(100), nullable=False)
    deskripsi = Column(String(500), nullable=False)
    lokasi_lahan = Column(String(200), nullable=False)
    status = Column(String, nullable=False, default="PERSIAPAN")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(_in_clause("status", PROYEK_STATUSES), name="ck_proyek_tani_status"),
    )

    petani = relationship("User", back_populates="proyek_tani")
    produk = relationship("Produk", back_populates="proyek_tani", cascade="all, delete-orphan")
    farming_updates = relationship("FarmingUpdate", back_populates="proyek_tani", cascade="all, delete-orphan")
    fase = relationship(
        "FaseProyek",
        back_populates="proyek_tani",
        cascade="all, delete-orphan",
        order_by="FaseProyek.urutan",
    )


class FaseProyek(Base):
    __tablename__ = "fase_proyek"

    id = Column(Integer, primary_key=True, index=True)
    proyek_tani_id = Column(Integer, ForeignKey("proyek_tani.id", ondelete="CASCADE"), nullable=False, index=True)
    nama = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    cerita = Column(Text, nullable=False, default="")
    gambar = Column(Text)
    urutan = Column(Integer, nullable=False, default=0)

    proyek_tani = relationship("ProyekTani", back_populates="fase")


class Produk(Base):
    __tablename__ = "produk"

    id = Column(Integer, primary_key=True, index=True)
    proyek_tani_id = Column(Integer, ForeignKey("proyek_tani.id", ondelete="CASCADE"), nullable=False)
    nama_produk = Column(String, nullable=False)
    deskripsi = Column(Text)
    foto_url = Column(JSON, nullable=False, default=list)
    harga = Column(Integer, nullable=False)
    unit = Column(String, nullable=False)
    stok_tersedia = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default="TERSEDIA")
    estimasi_panen = Column(Date)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(_in_clause("status", PRODUK_STATUSES), name="ck_produk_status"),
    )

    proyek_tani = relationship("ProyekTani", back_populates="produk")


class FarmingUpdate(Base):
    __tablename__ = "farming_updates"

    id = Column(Integer, primary_key=True, index=True)
    proyek_tani_id = Column(Integer, ForeignKey("proyek_tani.id", ondelete="CASCADE"), nullable=False)
    judul = Column(String, nullable=False, default="")
    deskripsi = Column(Text, nullable=False)
    foto_url = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    proyek_tani = relationship("ProyekTani", back_populates="farming_updates")
    likes = relationship("Like", back_populates="farming_update", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="farming_update", cascade="all, delete-orphan")


class Like(Base):
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    farming_update_id = Column(Integer, ForeignKey("farming_updates.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "farming_update_id", name="uq_likes_user_update"),
    )

    user = relationship("User", back_populates="likes")
    farming_update = relationship("FarmingUpdate", back_populates="likes")


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    farming_update_id = Column(Integer, ForeignKey("farming_updates.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="comments")
    farming_update = relationship("FarmingUpdate", back_populates="comments")


class CsMessage(Base):
    __tablename__ = "cs_messages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    message = Column(Text, nullable=False)
    admin_reply = Column(Text)
    admin_email = Column(String)
    status = Column(String, nullable=False, default="UNREAD")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    replied_at = Column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(_in_clause("status", CS_MESSAGE_STATUSES), name="ck_cs_messages_status"),
    )

    user = relationship("User", back_populates="cs_messages")


class ProfileView(Base):
    __tablename__ = "profile_views"

    id = Column(Integer, primary_key=True, index=True)
    petani_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Null for guests and for viewers whose account was deleted
    viewer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    petani = relationship("User", foreign_keys=[petani_id], back_populates="profile_views")
