# inventario_biomedico/validators.py
import re
from datetime import date, datetime, time
from typing import Union

def validar_campo_general(valor: str) -> bool:
    """Permite letras (con tildes), números y los caracteres especiales comunes (- _ . , /)."""
    return bool(re.match(r"^[a-zA-Z0-9áéíóúÁÉÍÓÚñÑ\-_.,/\s]+$", valor))

def validar_codigo_inventario(codigo: str) -> bool:
    """Mínimo 4 caracteres, solo letras mayúsculas, números y guion medio (ej: MBG-001)."""
    if len(codigo) < 4:
        return False
    return bool(re.match(r"^[A-Z0-9-]+$", codigo))

def validar_serial(serial: str) -> bool:
    """No permite espacios; letras, números y guion medio."""
    return bool(re.match(r"^[a-zA-Z0-9-]+$", serial))

def normalizar_fecha_iso(valor: Union[str, date, None]) -> str:
    """
    Convierte la fecha recibida a ISO-8601.
    Acepta texto, date o datetime. Si viene vacía o no se puede interpretar se usa la fecha actual.
    """
    if isinstance(valor, datetime):
        return valor.isoformat()
    if isinstance(valor, date):
        return datetime.combine(valor, time()).isoformat()
    texto = valor.strip() if isinstance(valor, str) else ""
    if texto:
        try:
            return datetime.fromisoformat(texto.replace("Z", "+00:00")).isoformat()
        except ValueError:
            pass
    return datetime.now().isoformat(timespec="seconds")

def formatear_observacion(texto: str) -> str:
    """
    Formatea el texto de las observaciones.
    - Si está vacío, devuelve "Ninguna".
    - Si no, pone la primera letra en mayúscula y el resto en minúscula.
    """
    if not texto.strip():
        return "Ninguna"
    return texto.strip().capitalize()
