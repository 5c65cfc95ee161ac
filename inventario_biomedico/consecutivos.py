# inventario_biomedico/consecutivos.py
from .config import SERIE_ACTA_INTERNA
from .database import DatabaseManager


def siguiente_consecutivo(db: DatabaseManager, serie: str = SERIE_ACTA_INTERNA) -> int:
    """
    Emite el siguiente número de la serie.
    Debe llamarse dentro de `db.transaccion()`: si la transacción se deshace, el número
    también, así que nunca queda asignado a un acta que no se guardó.
    """
    if not db.en_transaccion:
        raise RuntimeError("El consecutivo solo puede emitirse dentro de una transacción.")
    return db.incrementar_consecutivo(serie)
