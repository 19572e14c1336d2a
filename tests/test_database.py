"""
Test suite for the Tandur database models: constraints, defaults and cascades.
"""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.profile_utils import ProfilePatch, promote_to_petani
from db.init_db import ensure_admin
from db.models import (
    Comment,
    CsMessage,
    FaseProyek,
    FarmingUpdate,
    Like,
    PetaniApplication,
    ProfileView,
    Produk,
    ProyekTani,
    User,
    ROLE_ADMIN,
    ROLE_PEMBELI,
    ROLE_PETANI,
)
from core.security import verify_password

from conftest import create_user


def new_application(user: User, **overrides) -> PetaniApplication:
    fields = {
        "nama": "Sari Wulandari",
        "username": "sari_kebun",
        "email": user.email,
        "bio": "Kebun sayur hidroponik",
        "lokasi": "Lembang",
        "link_whatsapp": "https://wa.me/62811",
        "alasan_menjadi": "Menjual hasil panen",
        "pengalaman_bertani": "3 tahun",
        "jenis_komoditas": "Selada",
        "luas_lahan": "500 m2",
        "lokasi_lahan": "Lembang",
        "foto_ktp": "https://cdn.example.com/ktp.jpg",
    }
    fields.update(overrides)
    return PetaniApplication(user_id=user.id, **fields)


# ============================================================================
# USER TESTS
# ============================================================================

class TestUser:
    """Test users table"""

    def test_defaults(self, test_db: Session):
        user = User(email="baru@example.com")
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        assert user.role == ROLE_PEMBELI
        assert user.created_at is not None
        assert user.password_hash is None

    def test_unique_email(self, test_db: Session):
        create_user(test_db, "sama@example.com")
        with pytest.raises(IntegrityError):
            create_user(test_db, "sama@example.com")
        test_db.rollback()

    def test_unique_username(self, test_db: Session):
        create_user(test_db, "a@example.com", username="kembar")
        with pytest.raises(IntegrityError):
            create_user(test_db, "b@example.com", username="kembar")
        test_db.rollback()

    def test_role_constraint(self, test_db: Session):
        with pytest.raises(IntegrityError):
            create_user(test_db, "a@example.com", role="DISTRIBUTOR")
        test_db.rollback()


# ============================================================================
# PETANI APPLICATION TESTS
# ============================================================================

class TestPetaniApplication:
    """Test petani_applications table"""

    def test_defaults(self, test_db: Session, pembeli):
        application = new_application(pembeli)
        test_db.add(application)
        test_db.commit()
        test_db.refresh(application)
        assert application.status == "PENDING"
        assert application.sertifikat_lahan == []
        assert application.user.email == pembeli.email
        assert pembeli.petani_application.id == application.id

    def test_one_application_per_user(self, test_db: Session, pembeli):
        test_db.add(new_application(pembeli))
        test_db.commit()
        test_db.add(new_application(pembeli, username="lain"))
        with pytest.raises(IntegrityError):
            test_db.commit()
        test_db.rollback()

    def test_status_constraint(self, test_db: Session, pembeli):
        test_db.add(new_application(pembeli, status="DONE"))
        with pytest.raises(IntegrityError):
            test_db.commit()
        test_db.rollback()

    def test_reviewer_relationship(self, test_db: Session, pembeli, admin):
        application = new_application(pembeli, status="UNDER_REVIEW", reviewed_by=admin.id)
        test_db.add(application)
        test_db.commit()
        test_db.refresh(application)
        assert application.reviewer.name == "Admin Tandur"


# ============================================================================
# PROFILE PATCH TESTS
# ============================================================================

class TestProfilePatch:
    """Test sparse profile updates on approval"""

    def test_apply_skips_empty_fields(self):
        user = User(email="x@example.com", name="Lama", bio="Bio lama", image="lama.jpg")
        written = ProfilePatch(name="Baru", bio="", image=None).apply(user)
        assert written == ["name"]
        assert user.name == "Baru"
        assert user.bio == "Bio lama"
        assert user.image == "lama.jpg"

    def test_from_application(self, pembeli):
        application = new_application(pembeli, bio="", foto_profil="foto.jpg")
        patch = ProfilePatch.from_application(application)
        assert patch == ProfilePatch(name="Sari Wulandari", username="sari_kebun", bio=None, image="foto.jpg")

    def test_promote_to_petani_does_not_commit(self, test_db: Session, pembeli):
        application = new_application(pembeli)
        test_db.add(application)
        test_db.commit()

        user = promote_to_petani(test_db, application)
        assert user.role == ROLE_PETANI
        test_db.rollback()
        test_db.refresh(pembeli)
        assert pembeli.role == ROLE_PEMBELI

    def test_promote_missing_user(self, test_db: Session, pembeli):
        application = new_application(pembeli)
        application.user_id = 999
        assert promote_to_petani(test_db, application) is None


# ============================================================================
# CASCADE TESTS
# ============================================================================

class TestCascades:
    """Test deletes through the ownership chain"""

    def test_delete_user_removes_everything_owned(self, test_db: Session, petani, pembeli):
        proyek = ProyekTani(petani_id=petani.id, nama_proyek="Kebun", deskripsi="Kebun tomat", lokasi_lahan="Garut")
        test_db.add(proyek)
        test_db.commit()

        update = FarmingUpdate(proyek_tani_id=proyek.id, deskripsi="Tomat berbuah")
        test_db.add_all([
            Produk(proyek_tani_id=proyek.id, nama_produk="Tomat", harga=12000, unit="kg"),
            update,
            CsMessage(user_id=petani.id, message="Halo"),
        ])
        test_db.commit()
        test_db.add_all([
            Like(user_id=pembeli.id, farming_update_id=update.id),
            Comment(user_id=pembeli.id, farming_update_id=update.id, content="Segar!"),
        ])
        test_db.commit()

        test_db.delete(petani)
        test_db.commit()

        for model in (ProyekTani, Produk, FarmingUpdate, Like, Comment, CsMessage):
            assert test_db.query(model).count() == 0
        assert test_db.query(User).count() == 1

    def test_unique_like_per_user(self, test_db: Session, petani, pembeli):
        proyek = ProyekTani(petani_id=petani.id, nama_proyek="Kebun", deskripsi="Kebun", lokasi_lahan="Garut")
        test_db.add(proyek)
        test_db.commit()
        update = FarmingUpdate(proyek_tani_id=proyek.id, deskripsi="Update")
        test_db.add(update)
        test_db.commit()

        test_db.add(Like(user_id=pembeli.id, farming_update_id=update.id))
        test_db.commit()
        test_db.add(Like(user_id=pembeli.id, farming_update_id=update.id))
        with pytest.raises(IntegrityError):
            test_db.commit()
        test_db.rollback()

    def test_delete_proyek_removes_phases_in_order(self, test_db: Session, petani):
        proyek = ProyekTani(petani_id=petani.id, nama_proyek="Kebun", deskripsi="Kebun", lokasi_lahan="Garut")
        test_db.add(proyek)
        test_db.commit()
        test_db.add_all([
            FaseProyek(proyek_tani_id=proyek.id, nama="Panen", slug="panen", urutan=2),
            FaseProyek(proyek_tani_id=proyek.id, nama="Tanam", slug="tanam", urutan=1),
        ])
        test_db.commit()

        assert [f.nama for f in proyek.fase] == ["Tanam", "Panen"]
        assert proyek.fase[0].cerita == ""

        test_db.delete(proyek)
        test_db.commit()
        assert test_db.query(FaseProyek).count() == 0

    def test_profile_views_follow_the_petani_and_outlive_the_viewer(self, test_db: Session, petani, pembeli):
        test_db.add_all([
            ProfileView(petani_id=petani.id, viewer_id=pembeli.id),
            ProfileView(petani_id=petani.id),
        ])
        test_db.commit()

        test_db.delete(pembeli)
        test_db.commit()
        assert [v.viewer_id for v in test_db.query(ProfileView).all()] == [None, None]

        test_db.delete(petani)
        test_db.commit()
        assert test_db.query(ProfileView).count() == 0


# ============================================================================
# ADMIN BOOTSTRAP TESTS
# ============================================================================

class TestEnsureAdmin:
    """Test db.init_db.ensure_admin"""

    def test_creates_admin(self, test_db: Session):
        user = ensure_admin(test_db, "Boss@Tandur.id", "rahasia123")
        assert user.email == "boss@tandur.id"
        assert user.role == ROLE_ADMIN
        assert verify_password("rahasia123", user.password_hash)

    def test_promotes_existing_user(self, test_db: Session, pembeli):
        user = ensure_admin(test_db, pembeli.email, "passwordbaru")
        assert user.id == pembeli.id
        assert user.role == ROLE_ADMIN
        assert test_db.query(User).count() == 1
