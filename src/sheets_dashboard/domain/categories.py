from collections.abc import Sequence

CANONICAL_AGENTS = "Agentes de IA"
UNCATEGORIZED = "Sin categoría"

CANONICAL_CATEGORIES: tuple[str, ...] = (
    CANONICAL_AGENTS,
    "Publicidad",
    "Software",
    "Servidores",
    "Hobbie",
    "Mentoria",
)

# Keys are casefolded.
_LEGACY_ALIASES = {
    "agente": CANONICAL_AGENTS,
    "agente ia": CANONICAL_AGENTS,
}

PALETTE: tuple[str, ...] = (
    "#006FEE",
    "#F54180",
    "#17C964",
    "#F5A524",
    "#9333EA",
    "#06B6D4",
    "#E11D48",
    "#7828C8",
    "#FBBF24",
)

CATEGORY_COLORS: dict[str, str] = {
    CANONICAL_AGENTS: "#F54180",
    "Publicidad": "#006FEE",
    "Software": "#17C964",
    "Servidores": "#9333EA",
    "Hobbie": "#F5A524",
    "Mentoria": "#06B6D4",
    "Agente": "#F54180",
}

_RESERVED_COLORS = frozenset(CATEGORY_COLORS.values())
_FALLBACK_COLORS: tuple[str, ...] = tuple(c for c in PALETTE if c not in _RESERVED_COLORS)


def normalize_category(raw: str | None) -> str:
    label = (raw or "").strip()
    if not label:
        return UNCATEGORIZED
    return _LEGACY_ALIASES.get(label.casefold(), label)


def category_color(category: str, assigned: Sequence[str] = ()) -> str:
    """
    Colour for ``category`` given the fallback colours already handed out
    to earlier unknown categories (in iteration order).

    Known categories keep their explicit colour. Unknown ones first take the
    palette entries no known category reserves, then cycle the full palette.
    """
    explicit = CATEGORY_COLORS.get(category)
    if explicit:
        return explicit
    index = len(assigned)
    if index < len(_FALLBACK_COLORS):
        return _FALLBACK_COLORS[index]
    return PALETTE[index % len(PALETTE)]
