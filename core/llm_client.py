"""
TaniBot reply generation.

With GROQ_API_KEY set, the conversation is sent to Groq's OpenAI-compatible
chat-completions endpoint together with a system prompt carrying the context
data. Without a key the reply is composed locally from the context data.
"""

import json
import logging
from typing import List

import httpx

from core.chat_intent import Intent
from core.config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The language model could not produce a reply."""


SYSTEM_PROMPT = """Kamu adalah TaniBot, asisten AI untuk platform media sosial petani Indonesia! Misimu membantu pengguna mencari informasi tentang petani, produk pertanian, tips bertani, dan info pasar.

PENTING:
- SELALU jawab dalam Bahasa Indonesia yang santai dan ramah, JANGAN PERNAH pakai bahasa Inggris
- Pakai formatting markdown untuk teks tebal (**bold**) dan list
- Fokus pada topik: pertanian, petani, produk hasil tani, tips berkebun

DATA KONTEKS TERKINI (gunakan untuk jawab pertanyaan user dengan informasi real dan akurat):
{context}

INSTRUKSI KHUSUS:
- Kalau ada data produk, sebutkan nama, harga, stok, dan petaninya
- Kalau ada data petani, sebutkan nama, lokasi, dan proyeknya
- Kalau ada statistik, berikan angka yang akurat
- Kalau data kosong, bilang "belum ada" atau "tidak tersedia saat ini"
- Format harga dengan "Rp" dan beri emphasis dengan **bold**

Kalau ada pertanyaan di luar topik pertanian, arahkan kembali dengan cara yang fun."""


def build_system_prompt(context: dict) -> str:
    return SYSTEM_PROMPT.format(context=json.dumps(context, indent=2, ensure_ascii=False, default=str))


def format_rupiah(amount: int) -> str:
    return "Rp" + f"{amount:,}".replace(",", ".")


def compose_local_reply(intent: Intent, context: dict) -> str:
    if "error" in context:
        return "Maaf, data sedang tidak tersedia saat ini. Coba lagi sebentar lagi ya!"

    if "products" in context:
        products = context["products"]
        if not products:
            return "Produk yang kamu cari belum ada saat ini."
        lines = ["Ini produk yang bisa kamu cek:"]
        for p in products:
            petani = p["petani"]["name"] if p.get("petani") else "petani Tandur"
            lines.append(
                f"- **{p['namaProduk']}** **{format_rupiah(p['harga'])}**/{p['unit']}, "
                f"stok {p['stokTersedia']}, dari {petani}"
            )
        return "\n".join(lines)

    if "farmers" in context:
        farmers = context["farmers"]
        if not farmers:
            return "Belum ada petani yang cocok saat ini."
        lines = ["Kenalan dengan petani kita:"]
        for f in farmers:
            lokasi = f.get("lokasi") or "lokasi belum diisi"
            lines.append(f"- **{f['name']}** ({lokasi})")
        return "\n".join(lines)

    if "projects" in context:
        projects = context["projects"]
        if not projects:
            return "Belum ada proyek tanam yang aktif saat ini."
        lines = ["Proyek tanam yang sedang berjalan:"]
        for p in projects:
            lines.append(f"- **{p['namaProyek']}** ({p['status']}) di {p['lokasiLahan']}")
        return "\n".join(lines)

    if "stats" in context:
        s = context["stats"]
        return (
            f"Saat ini ada **{s['totalFarmers']}** petani, **{s['totalProducts']}** produk "
            f"(**{s['availableProducts']}** tersedia), dan **{s['activeProjects']}** proyek aktif."
        )

    if "updates" in context:
        updates = context["updates"]
        if not updates:
            return "Belum ada kabar terbaru dari petani."
        lines = ["Kabar terbaru dari ladang:"]
        for u in updates:
            lines.append(f"- **{u['judul'] or u['namaProyek']}**: {u['deskripsi']}")
        return "\n".join(lines)

    if "locations" in context:
        locations = context["locations"]
        if not locations:
            return "Data lokasi petani belum tersedia."
        lines = ["Daerah dengan petani terbanyak:"]
        for loc in locations:
            lines.append(f"- **{loc['lokasi']}**: {loc['jumlahPetani']} petani")
        return "\n".join(lines)

    return (
        "Halo! Aku **TaniBot**. Tanya aku soal produk tani, petani, proyek tanam, "
        "atau kabar terbaru dari ladang ya!"
    )


def generate_reply(messages: List[dict], intent: Intent, context: dict) -> str:
    if not settings.GROQ_API_KEY:
        return compose_local_reply(intent, context)

    payload = {
        "model": settings.GROQ_MODEL,
        "messages": [{"role": "system", "content": build_system_prompt(context)}, *messages],
    }
    headers = {"Authorization": f"Bearer {settings.GROQ_API_KEY}"}
    try:
        with httpx.Client(timeout=settings.LLM_TIMEOUT_SECONDS) as client:
            resp = client.post(settings.GROQ_API_URL, json=payload, headers=headers)
            resp.raise_for_status()
            return resp.json()["choices"][0]["message"]["content"]
    except httpx.HTTPError as e:
        logger.error(f"Groq API request failed: {e}")
        raise LLMError("Groq API request failed") from e
    except (KeyError, IndexError, ValueError) as e:
        logger.error(f"Unexpected Groq API response: {e}")
        raise LLMError("Unexpected Groq API response") from e
