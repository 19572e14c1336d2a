"""
Keyword intent classifier for TaniBot.

Each rule is a list of keyword groups; a message matches a rule when every
group has at least one keyword contained in the lower-cased message. Rules
are checked in the order of INTENT_RULES and the first match wins, so a
message about "produk beras terbaru" is PRODUCTS_NEW, not PRODUCTS_RICE.
"""

from enum import Enum
from typing import Sequence, Tuple


class Intent(str, Enum):
    PRODUCTS_NEW = "products_new"
    PRODUCTS_AVAILABLE = "products_available"
    PRODUCTS_RICE = "products_rice"
    PRODUCTS_VEGETABLES = "products_vegetables"
    PRODUCTS_FRUITS = "products_fruits"
    PRODUCTS_CHEAP = "products_cheap"
    FARMERS_NEW = "farmers_new"
    FARMERS_ACTIVE = "farmers_active"
    PROJECTS_INFO = "projects_info"
    STATS = "stats"
    UPDATES = "updates"
    LOCATIONS = "locations"
    GENERAL = "general"


Rule = Tuple[Intent, Sequence[Sequence[str]]]

# Precedence is the list order
INTENT_RULES: Sequence[Rule] = (
    (Intent.PRODUCTS_NEW, (("produk",), ("terbaru", "baru"))),
    (Intent.PRODUCTS_AVAILABLE, (("produk",), ("tersedia", "ada"))),
    (Intent.PRODUCTS_RICE, (("beras", "padi"),)),
    (Intent.PRODUCTS_VEGETABLES, (("sayur", "kangkung", "bayam", "tomat"),)),
    (Intent.PRODUCTS_FRUITS, (("buah", "jeruk", "apel", "pisang"),)),
    (Intent.PRODUCTS_CHEAP, (("murah", "harga"),)),
    (Intent.FARMERS_NEW, (("petani",), ("baru", "bergabung"))),
    (Intent.FARMERS_ACTIVE, (("petani",), ("aktif", "terbaik"))),
    (Intent.PROJECTS_INFO, (("proyek", "project", "tanam"),)),
    (Intent.STATS, (("statistik", "data", "jumlah"),)),
    (Intent.UPDATES, (("update", "berita", "kabar"),)),
    (Intent.LOCATIONS, (("lokasi", "daerah", "tempat"),)),
)


def classify_intent(message: str) -> Intent:
    text = (message or "").lower()
    for intent, groups in INTENT_RULES:
        if all(any(keyword in text for keyword in group) for group in groups):
            return intent
    return Intent.GENERAL
