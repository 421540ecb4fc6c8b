import re

SECTION_SIGN = "§"

# Colores 0-9a-f, formatos k-o y reset r.
_TRADITIONAL_CODE = re.compile(r"&([0-9a-fk-or])", re.IGNORECASE)


def from_traditional(text: str) -> dict:
    """
    Convierte un texto con códigos '&' (p. ej. "&6&lHola") en un componente de chat JSON.

    El cliente interpreta los códigos con '§' dentro del campo "text".
    """
    return {"text": _TRADITIONAL_CODE.sub(lambda m: SECTION_SIGN + m.group(1).lower(), text)}
