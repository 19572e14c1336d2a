"""
Test suite for TaniBot: intent classification, context data and replies.
"""

import httpx
import pytest

from core import chat_context, llm_client
from core.chat_intent import Intent, classify_intent
from core.config import settings
from core.llm_client import compose_local_reply, format_rupiah
from db.models import Produk, ProyekTani

from conftest import TestingSessionLocal


def ask(client, text: str):
    return client.post("/chat", json={"messages": [{"role": "user", "content": text}]})


@pytest.fixture
def kebun(test_db, petani):
    proyek = ProyekTani(
        petani_id=petani.id,
        nama_proyek="Sawah Organik",
        deskripsi="Padi organik",
        lokasi_lahan="Karawang",
        status="PERAWATAN",
    )
    test_db.add(proyek)
    test_db.commit()
    test_db.add_all([
        Produk(proyek_tani_id=proyek.id, nama_produk="Beras Merah", harga=18000, unit="kg", stok_tersedia=50, foto_url=[]),
        Produk(proyek_tani_id=proyek.id, nama_produk="Jeruk Medan", harga=60000, unit="kg", stok_tersedia=0, foto_url=[]),
    ])
    test_db.commit()
    return proyek


class TestIntentClassification:
    """Test classify_intent precedence"""

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Ada produk beras terbaru?", Intent.PRODUCTS_NEW),
            ("produk apa yang tersedia", Intent.PRODUCTS_AVAILABLE),
            ("Cari BERAS dong", Intent.PRODUCTS_RICE),
            ("harga beras berapa", Intent.PRODUCTS_RICE),
            ("mau beli sayur", Intent.PRODUCTS_VEGETABLES),
            ("jual buah apa", Intent.PRODUCTS_FRUITS),
            ("yang murah dong", Intent.PRODUCTS_CHEAP),
            ("petani yang baru bergabung", Intent.FARMERS_NEW),
            ("petani paling aktif", Intent.FARMERS_ACTIVE),
            ("info proyek tanam", Intent.PROJECTS_INFO),
            ("statistik platform", Intent.STATS),
            ("kabar dari ladang", Intent.UPDATES),
            ("di daerah mana saja", Intent.LOCATIONS),
            ("halo", Intent.GENERAL),
            ("", Intent.GENERAL),
        ],
    )
    def test_classify(self, message, expected):
        assert classify_intent(message) == expected


class TestLocalReply:
    """Test the reply composed without a remote model"""

    def test_format_rupiah(self):
        assert format_rupiah(15000) == "Rp15.000"
        assert format_rupiah(1250000) == "Rp1.250.000"
        assert format_rupiah(500) == "Rp500"

    def test_products_reply(self):
        context = {
            "products": [
                {"namaProduk": "Beras Merah", "harga": 18000, "unit": "kg", "stokTersedia": 5, "petani": {"name": "Pak Tani"}},
            ]
        }
        text = compose_local_reply(Intent.PRODUCTS_RICE, context)
        assert "**Beras Merah**" in text
        assert "Rp18.000" in text
        assert "Pak Tani" in text

    def test_empty_products_reply(self):
        assert "belum ada" in compose_local_reply(Intent.PRODUCTS_NEW, {"products": []})

    def test_database_error_reply(self):
        text = compose_local_reply(Intent.STATS, {"error": "Database tidak tersedia saat ini"})
        assert "tidak tersedia" in text

    def test_general_reply(self):
        assert "TaniBot" in compose_local_reply(Intent.GENERAL, {})


class TestChatContext:
    """Test the data loaded for each intent"""

    def test_rice_products(self, kebun):
        db = TestingSessionLocal()
        try:
            context = chat_context.get_context_data(db, Intent.PRODUCTS_RICE)
        finally:
            db.close()
        assert [p["namaProduk"] for p in context["products"]] == ["Beras Merah"]
        assert context["products"][0]["petani"]["lokasi"] == "Garut"

    def test_available_products_skip_empty_stock(self, kebun):
        db = TestingSessionLocal()
        try:
            context = chat_context.get_context_data(db, Intent.PRODUCTS_AVAILABLE)
        finally:
            db.close()
        assert [p["namaProduk"] for p in context["products"]] == ["Beras Merah"]

    def test_stats(self, kebun):
        db = TestingSessionLocal()
        try:
            context = chat_context.get_context_data(db, Intent.STATS)
        finally:
            db.close()
        assert context["stats"] == {
            "totalFarmers": 1,
            "totalProducts": 2,
            "activeProjects": 1,
            "availableProducts": 1,
        }

    def test_database_failure_is_reported_in_context(self, monkeypatch):
        def broken_fetch(db, intent):
            raise RuntimeError("database down")

        monkeypatch.setattr(chat_context, "_fetch", broken_fetch)
        db = TestingSessionLocal()
        try:
            context = chat_context.get_context_data(db, Intent.STATS)
        finally:
            db.close()
        assert context == {"error": "Database tidak tersedia saat ini"}


class FakeGroqClient:
    """Stands in for httpx.Client inside generate_reply."""

    calls = []
    response = None
    error = None

    def __init__(self, *args, **kwargs):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def post(self, url, json=None, headers=None):
        FakeGroqClient.calls.append({"url": url, "json": json, "headers": headers})
        if FakeGroqClient.error:
            raise FakeGroqClient.error
        return FakeGroqClient.response


@pytest.fixture
def groq(monkeypatch):
    FakeGroqClient.calls = []
    FakeGroqClient.response = None
    FakeGroqClient.error = None
    monkeypatch.setattr(settings, "GROQ_API_KEY", "gsk-test")
    monkeypatch.setattr(llm_client.httpx, "Client", FakeGroqClient)
    return FakeGroqClient


class TestChatEndpoint:
    """Test POST /chat"""

    def test_local_reply_uses_database(self, client, kebun):
        response = ask(client, "cari beras")
        assert response.status_code == 200
        data = response.json()
        assert data["intent"] == "products_rice"
        assert "Beras Merah" in data["text"]

    def test_last_message_decides_intent(self, client):
        response = client.post(
            "/chat",
            json={
                "messages": [
                    {"role": "user", "content": "cari beras"},
                    {"role": "assistant", "content": "Ini berasnya"},
                    {"role": "user", "content": "statistik dong"},
                ]
            },
        )
        assert response.json()["intent"] == "stats"

    def test_empty_conversation(self, client):
        response = client.post("/chat", json={"messages": []})
        assert response.status_code == 200
        assert response.json()["intent"] == "general"

    def test_remote_reply(self, client, kebun, groq):
        groq.response = httpx.Response(
            200,
            json={"choices": [{"message": {"content": "Ada **Beras Merah** nih!"}}]},
            request=httpx.Request("POST", settings.GROQ_API_URL),
        )
        response = ask(client, "cari beras")
        assert response.status_code == 200
        assert response.json()["text"] == "Ada **Beras Merah** nih!"

        sent = groq.calls[0]
        assert sent["headers"]["Authorization"] == "Bearer gsk-test"
        assert sent["json"]["messages"][0]["role"] == "system"
        assert "Beras Merah" in sent["json"]["messages"][0]["content"]
        assert sent["json"]["messages"][-1] == {"role": "user", "content": "cari beras"}

    def test_remote_failure_is_sanitized(self, client, groq):
        groq.error = httpx.ConnectError("connection refused")
        response = ask(client, "halo")
        assert response.status_code == 500
        assert response.json()["detail"] == "Maaf, terjadi kesalahan di server."

    def test_remote_error_status(self, client, groq):
        groq.response = httpx.Response(
            503,
            json={"error": "overloaded"},
            request=httpx.Request("POST", settings.GROQ_API_URL),
        )
        response = ask(client, "halo")
        assert response.status_code == 500
