"""Best-effort SKU derivation.

Generated codes are a convenience only; uniqueness is enforced by the
variant validator and the ``uq_variants_sku`` index regardless of how a
SKU was produced.
"""
import re
import secrets
import time
import unicodedata

from storefront.core.config import settings

_NON_WORD_RE = re.compile(r"[^A-Z0-9\s]")
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")

MAX_SKU_LENGTH = 100
# "-" plus disambiguator()
SUFFIX_ROOM = 7


def _ascii_upper(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    return normalized.encode("ascii", "ignore").decode("ascii").upper()


def disambiguator() -> str:
    """Four-digit time tail plus two random hex chars."""
    tail = str(time.time_ns() // 1_000_000)[-4:]
    return f"{tail}{secrets.token_hex(1).upper()}"


def generate_sku(
    variant_name: str | None = None,
    color: str | None = None,
    *,
    prefix: str | None = None,
    suffix: str | None = None,
) -> str:
    """Derive a SKU such as ``VAR-EXT-LAR-RED-4821A3`` from descriptive text.

    Each word of ``variant_name`` is cut to a short prefix, the color is
    compacted to one code, and a disambiguating suffix is appended.
    """
    width = settings.sku_word_prefix_length
    parts = [prefix or settings.sku_prefix]

    if variant_name:
        cleaned = _NON_WORD_RE.sub("", _ascii_upper(variant_name))
        words = [w[:width] for w in cleaned.split() if w]
        if words:
            parts.append("-".join(words))

    if color:
        color_code = _NON_ALNUM_RE.sub("", _ascii_upper(color))[:width]
        if color_code:
            parts.append(color_code)

    parts.append(suffix or disambiguator())
    return "-".join(parts)[:MAX_SKU_LENGTH]


def slugify(name: str) -> str:
    """Accent-stripped, lowercase slug with ``-`` separators."""
    normalized = unicodedata.normalize("NFKD", name)
    ascii_name = normalized.encode("ascii", "ignore").decode("ascii").lower()
    return _SLUG_STRIP_RE.sub("-", ascii_name).strip("-")


def bulk_sku(product_slug: str, value_ids: list[str]) -> str:
    """SKU for a bulk-created variant: slug plus a short code per value id.

    The slug is shortened so the value codes always survive and a
    ``-<disambiguator>`` tail still fits within ``MAX_SKU_LENGTH``.
    """
    codes = "-".join(str(v).replace("-", "")[:4] for v in value_ids)
    limit = MAX_SKU_LENGTH - SUFFIX_ROOM
    slug = product_slug[:max(limit - len(codes) - 1, 0)].rstrip("-")
    sku = f"{slug}-{codes}" if slug else codes
    return sku.upper()[:limit]
