# inventario_biomedico/equipos.py
"""
Cambios de estado manuales de un equipo (Mantenimiento, Dado de baja, Disponible).
Asignado solo lo pone una entrega a paciente y nunca se cambia por aquí.
"""
from typing import Dict
from .auth import requiere_permiso
from .config import ESTADOS_EQUIPO, ESTADO_ASIGNADO
from .database import DatabaseManager
from .errores import ErrorValidacion, ErrorElegibilidad, ErrorConflicto, ErrorNoEncontrado


@requiere_permiso("registrar_equipo")
def cambiar_estado_equipo(db: DatabaseManager, usuario_logueado: dict, equipo_id: int, nuevo_estado: str) -> Dict:
    if nuevo_estado not in ESTADOS_EQUIPO or nuevo_estado == ESTADO_ASIGNADO:
        raise ErrorValidacion(f"Estado no válido: {nuevo_estado}.", "invalid-argument")

    with db.transaccion():
        equipo = db.get_equipo_by_id(equipo_id)
        if not equipo:
            raise ErrorNoEncontrado("El equipo no existe.")
        if db.get_asignacion_activa_por_equipo(equipo_id):
            raise ErrorElegibilidad(f"El equipo {equipo['codigo_inventario']} está asignado a un paciente.")
        if not db.update_equipo_estado(equipo_id, nuevo_estado):
            raise ErrorConflicto(f"El equipo {equipo['codigo_inventario']} está en un acta interna pendiente "
                                 "o asignado a un paciente. Actualice la información y vuelva a intentarlo.")

    db.registrar_movimiento_sistema("Cambio de Estado",
                                    f"{equipo['codigo_inventario']}: {equipo['estado']} -> {nuevo_estado}",
                                    usuario_logueado['username'])
    return db.get_equipo_by_id(equipo_id)
