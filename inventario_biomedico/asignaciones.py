# inventario_biomedico/asignaciones.py
"""
Asignación de equipos a pacientes. No forma parte del flujo de actas internas, pero
sus efectos (estado Asignado, asignación activa) son los que el flujo debe respetar.
"""
from typing import Dict
from .auth import requiere_permiso
from .config import ESTADO_DISPONIBLE, ESTADO_ASIGNADO, ESTADOS_EQUIPO
from .database import DatabaseManager
from .errores import ErrorValidacion, ErrorElegibilidad, ErrorConflicto, ErrorNoEncontrado


@requiere_permiso("gestionar_asignaciones")
def registrar_paciente(db: DatabaseManager, usuario_logueado: dict, nombre_completo: str, numero_documento: str) -> int:
    nombre_completo, numero_documento = (nombre_completo or '').strip(), (numero_documento or '').strip()
    if not nombre_completo or not numero_documento:
        raise ErrorValidacion("Nombre y número de documento son requeridos.", "missing-field")
    paciente_id = db.insert_paciente(nombre_completo, numero_documento)
    if paciente_id is None:
        raise ErrorConflicto(f"Ya existe un paciente con documento {numero_documento}.", "duplicate")
    db.registrar_movimiento_sistema("Registro de Paciente", f"Paciente {nombre_completo} ({numero_documento})", usuario_logueado['username'])
    return paciente_id


@requiere_permiso("gestionar_asignaciones")
def asignar_equipo_a_paciente(db: DatabaseManager, usuario_logueado: dict, paciente_id: int, equipo_id: int) -> int:
    """Solo se entregan equipos Disponibles, habilitados por un acta aceptada y sin acta pendiente."""
    with db.transaccion():
        paciente = db.get_paciente_by_id(paciente_id)
        equipo = db.get_equipo_by_id(equipo_id)
        if not paciente or not equipo:
            raise ErrorNoEncontrado("El paciente o el equipo no existe.")
        if equipo['acta_pendiente_id']:
            raise ErrorElegibilidad(f"El equipo {equipo['codigo_inventario']} está en un acta interna pendiente de aceptación.")
        if equipo['estado'] != ESTADO_DISPONIBLE or db.get_asignacion_activa_por_equipo(equipo_id):
            raise ErrorElegibilidad(f"El equipo {equipo['codigo_inventario']} no está disponible (estado: {equipo['estado']}).")
        if not equipo['disponible_para_entrega']:
            raise ErrorElegibilidad(f"El equipo {equipo['codigo_inventario']} no ha sido recibido mediante acta interna.")
        asignacion_id = db.insert_asignacion(paciente_id, equipo_id, usuario_logueado['id'])
        db.set_equipo_asignado(equipo_id, ESTADO_ASIGNADO, True)
        db.set_paciente_asignacion_activa(paciente_id, True)

    db.registrar_movimiento_sistema("Asignación a Paciente",
                                    f"Equipo {equipo['codigo_inventario']} asignado a {paciente['nombre_completo']}",
                                    usuario_logueado['username'])
    return asignacion_id


@requiere_permiso("gestionar_asignaciones")
def finalizar_asignacion(db: DatabaseManager, usuario_logueado: dict, asignacion_id: int,
                         estado_final: str = ESTADO_DISPONIBLE) -> Dict:
    if estado_final not in ESTADOS_EQUIPO or estado_final == ESTADO_ASIGNADO:
        raise ErrorValidacion(f"Estado final no válido: {estado_final}.", "invalid-argument")
    with db.transaccion():
        asignacion = db.get_asignacion_by_id(asignacion_id)
        if not asignacion:
            raise ErrorNoEncontrado("La asignación no existe.")
        if not db.finalizar_asignacion(asignacion_id):
            raise ErrorConflicto("La asignación ya estaba finalizada.", "wrong-state")
        db.set_equipo_asignado(asignacion['equipo_id'], estado_final, False)
        sigue_activo = asignacion['paciente_id'] in db.get_ids_pacientes_con_asignacion_activa()
        db.set_paciente_asignacion_activa(asignacion['paciente_id'], sigue_activo)

    db.registrar_movimiento_sistema("Devolución de Paciente",
                                    f"Asignación {asignacion_id} finalizada; equipo queda {estado_final}",
                                    usuario_logueado['username'])
    return db.get_asignacion_by_id(asignacion_id)
