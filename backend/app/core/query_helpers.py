LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """Patrón LIKE de búsqueda parcial con los comodines del texto escapados."""
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
