"""Production areas and their defect vocabularies."""

from __future__ import annotations

from typing import Iterable


AREA_SILLAS = "SILLAS"
AREA_SALAS = "SALAS"
AREAS: tuple[str, ...] = (AREA_SILLAS, AREA_SALAS)

DEFECT_TAGS_BY_AREA: dict[str, tuple[str, ...]] = {
    AREA_SILLAS: (
        "GOLPE DES. DE LACA",
        "GOLPE ANT. DE LACA",
        "DESPOSTILLADO",
        "RAYAS DES. DE LACA",
        "RAYAS ANT. DE LACA",
        "MARCA PULIDORA",
        "MARCA CARACOL",
        "SIN RESANE",
        "EXCESO DE RESANE",
        "LACA MANCHA",
        "LACA CHORREADA",
        "LACA MARCAS",
        "LACA GRUMO",
        "LACA BRISIADO",
        "GRAPA VISIBLE",
        "CASCO DESCUADRADO",
        "CASCO QUEBRADO",
        "BONFORD ROTO",
        "COSTURA DESALINEADA",
        "PESPUNTE FLOJO",
        "FALLA DE TELA",
        "DIFERENCIA DE TONO",
        "MAL TAPIZADO",
        "TELA SUCIA",
        "TELA ROTA",
        "RESPALDO QUEBRADO",
        "OTRO",
    ),
    AREA_SALAS: (
        "MAL TAPIZADO",
        "BONFORD ROTO",
        "GRAPA VISIBLE",
        "TIRA TACHUELA DESALINEADO",
        "TIRA TACHUELA SUELTA",
        "JALONES DESALINEADOS",
        "JALONES SUELTOS",
        "COSTURA DESALINEADA",
        "PESPUNTE FLOJO",
        "FALLA DE TELA",
        "DIFERENCIA DE TONO",
        "CASCO DESCUADRADO",
        "CASCO QUEBRADO",
        "PATAS FLOJAS",
        "TELA SUCIA",
        "TELA MANCHADA",
        "TELA ROTA",
        "OTRO",
    ),
}


def normalize_area(area: str | None) -> str:
    return (area or "").strip().upper()


def normalize_tag(tag: str | None) -> str:
    return " ".join((tag or "").split()).upper()


def is_known_area(area: str | None) -> bool:
    return normalize_area(area) in DEFECT_TAGS_BY_AREA


def defect_tags_for_area(area: str | None) -> tuple[str, ...]:
    return DEFECT_TAGS_BY_AREA.get(normalize_area(area), ())


def ensure_known_area(area: str | None) -> str:
    normalized = normalize_area(area)
    if normalized not in DEFECT_TAGS_BY_AREA:
        raise ValueError(f"Unknown area: {area!r}")
    return normalized


def clean_defect_tags(*, area: str, tags: Iterable[str] | None) -> list[str]:
    """Normalize tags, drop blanks and duplicates (first occurrence wins) and check the area vocabulary."""
    allowed = set(defect_tags_for_area(area))
    cleaned: list[str] = []
    for raw in tags or ():
        tag = normalize_tag(raw)
        if not tag or tag in cleaned:
            continue
        if tag not in allowed:
            raise LookupError(f"Defect '{tag}' is not allowed for area {normalize_area(area)}")
        cleaned.append(tag)
    if not cleaned:
        raise ValueError("At least one defect must be selected")
    return cleaned
