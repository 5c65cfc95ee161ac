# inventario_biomedico/actas_internas.py
"""
Actas internas: entrega de equipos del Ingeniero Biomédico a la Auxiliar Administrativa.

El acta se crea en estado Enviada con la firma de quien entrega y deja cada equipo
reservado (acta_pendiente_id). La auxiliar la acepta con su firma; en ese momento los
equipos se liberan y quedan habilitados para entrega a pacientes. No hay otro camino
de salida del estado Enviada.

Crear y aceptar se ejecutan cada una en una sola transacción: o se aplica todo o nada.
"""
from typing import Dict, List, Optional, Union
from .acta_borrador import snapshot_item
from .auth import requiere_permiso
from .config import (ACTA_ENVIADA, ROL_AUXILIAR, MAX_EQUIPOS_POR_ACTA, AREA_POR_DEFECTO,
                     NOMBRE_ENTREGA_POR_DEFECTO)
from .consecutivos import siguiente_consecutivo
from .database import DatabaseManager
from .elegibilidad import (motivo_no_elegible, filtrar_equipos_transferibles, MOTIVO_ACTA_PENDIENTE,
                           DESCRIPCION_MOTIVOS)
from .errores import (ErrorValidacion, ErrorElegibilidad, ErrorConflicto, ErrorAutorizacion,
                      ErrorNoEncontrado)
from .validators import normalizar_fecha_iso
from .visibilidad import filtrar_actas_visibles

Firma = Union[bytes, bytearray, memoryview, str, None]

# --- FUNCIONES AUXILIARES ---

def _normalizar_firma(firma: Firma, descripcion: str) -> bytes:
    """Las firmas se guardan como contenido binario opaco (imagen o data URL)."""
    if isinstance(firma, (bytes, bytearray, memoryview)):
        contenido = bytes(firma)
    elif isinstance(firma, str):
        contenido = firma.strip().encode('utf-8')
    else:
        contenido = b""
    if not contenido.strip():
        raise ErrorValidacion(f"La firma de {descripcion} es requerida.", "missing-signature")
    return contenido


def _normalizar_referencias(equipo_refs) -> List[Union[int, str]]:
    """
    Descarta vacíos y duplicados conservando el orden.
    Los enteros son ids de equipo; los textos son códigos de inventario.
    """
    referencias = []
    for ref in equipo_refs or []:
        if isinstance(ref, bool):
            continue
        if isinstance(ref, str):
            ref = ref.strip().upper()
            if not ref:
                continue
        elif not isinstance(ref, int):
            continue
        if ref not in referencias:
            referencias.append(ref)
    return referencias


def _resolver_equipo(db: DatabaseManager, ref: Union[int, str]) -> Optional[Dict]:
    """Un texto se busca primero como código; solo si ningún código coincide se prueba como id."""
    if isinstance(ref, int):
        return db.get_equipo_by_id(ref)
    equipo = db.get_equipo_by_codigo(ref)
    if equipo is None and ref.isascii() and ref.isdigit():
        equipo = db.get_equipo_by_id(int(ref))
    return equipo


def _resolver_receptor(db: DatabaseManager, recibe_id=None, recibe_email: Optional[str] = None) -> Dict:
    """El receptor se busca por id o, si no llega, por email. Debe ser una Auxiliar activa."""
    receptor = None
    if recibe_id not in (None, ""):
        try:
            receptor = db.get_user_by_id(int(recibe_id))
        except (TypeError, ValueError):
            receptor = None
    elif recibe_email and recibe_email.strip():
        receptor = db.get_user_by_email(recibe_email.strip())
    else:
        raise ErrorElegibilidad("Debe indicar el usuario que recibe (id o email).", "unknown-receiver")

    if not receptor or not receptor['is_active'] or receptor['nombre_rol'] != ROL_AUXILIAR:
        raise ErrorElegibilidad(f"El receptor no existe, está inactivo o no tiene rol {ROL_AUXILIAR}.", "unknown-receiver")
    return receptor


def _verificar_usuario_vigente(db: DatabaseManager, usuario: Dict) -> Dict:
    """Relee al usuario: una cuenta desactivada después del login no puede operar."""
    vigente = db.get_user_by_id(usuario['id'])
    if not vigente or not vigente['is_active'] or vigente['nombre_rol'] != usuario.get('nombre_rol'):
        raise ErrorAutorizacion("Su cuenta ya no está habilitada para esta operación.")
    return vigente


def _normalizar_id_acta(acta_id) -> int:
    try:
        return int(str(acta_id).strip())
    except (TypeError, ValueError):
        raise ErrorValidacion("El identificador del acta es requerido.", "missing-field")

# --- OPERACIONES ---

@requiere_permiso("listar_receptores")
def listar_receptores_elegibles(db: DatabaseManager, usuario_logueado: dict) -> List[Dict]:
    """Auxiliares administrativas activas, ordenadas por nombre."""
    return [
        {'id': u['id'], 'nombre': u['nombre_completo'], 'email': u['email']}
        for u in db.get_users_by_role(ROL_AUXILIAR, solo_activos=True)
    ]


@requiere_permiso("crear_acta_interna")
def listar_equipos_elegibles(db: DatabaseManager, usuario_logueado: dict) -> List[Dict]:
    return filtrar_equipos_transferibles(db.get_all_equipos(), db.get_ids_equipos_con_asignacion_activa(), usuario_logueado)


@requiere_permiso("crear_acta_interna")
def crear_acta_interna(db: DatabaseManager, usuario_logueado: dict, datos: dict) -> Dict:
    """
    Crea un acta interna en estado Enviada.

    `datos` admite: recibe_id o recibe_email, ciudad, sede, area, cargo_recibe,
    observaciones, fecha (ISO o date), equipo_ids (ids enteros o códigos) y firma_entrega.
    Devuelve {'id', 'consecutivo'}. Cualquier error deja la base intacta.
    """
    firma_entrega = _normalizar_firma(datos.get('firma_entrega'), "quien entrega")

    referencias = _normalizar_referencias(datos.get('equipo_ids'))
    if not referencias:
        raise ErrorValidacion("Debe seleccionar al menos 1 equipo.", "empty-selection")
    if len(referencias) > MAX_EQUIPOS_POR_ACTA:
        raise ErrorValidacion(f"Máximo {MAX_EQUIPOS_POR_ACTA} equipos por acta.", "too-many-equipment")

    cargo_recibe = (datos.get('cargo_recibe') or '').strip()
    if not cargo_recibe:
        raise ErrorValidacion("El cargo de quien recibe es requerido.", "missing-field")

    with db.transaccion():
        entrega = _verificar_usuario_vigente(db, usuario_logueado)
        receptor = _resolver_receptor(db, datos.get('recibe_id'), datos.get('recibe_email'))

        ids_asignados = db.get_ids_equipos_con_asignacion_activa()
        equipos = []
        for ref in referencias:
            equipo = _resolver_equipo(db, ref)
            if not equipo:
                raise ErrorNoEncontrado(f"El equipo {ref} no existe.")
            if any(e['id'] == equipo['id'] for e in equipos):
                continue
            motivo = motivo_no_elegible(equipo, ids_asignados, entrega)
            if motivo == MOTIVO_ACTA_PENDIENTE:
                raise ErrorConflicto(f"El equipo {equipo['codigo_inventario']} ya está en un acta interna pendiente. "
                                     "Actualice la lista y vuelva a intentarlo.")
            if motivo:
                raise ErrorElegibilidad(f"El equipo {equipo['codigo_inventario']} {DESCRIPCION_MOTIVOS[motivo]}.")
            equipos.append(equipo)

        consecutivo = siguiente_consecutivo(db)
        acta_id = db.insert_acta_interna({
            'consecutivo': consecutivo,
            'fecha': normalizar_fecha_iso(datos.get('fecha')),
            'ciudad': (datos.get('ciudad') or '').strip(),
            'sede': (datos.get('sede') or '').strip(),
            'area': (datos.get('area') or '').strip() or AREA_POR_DEFECTO,
            'cargo_recibe': cargo_recibe,
            'observaciones': (datos.get('observaciones') or '').strip(),
            'entrega_id': entrega['id'],
            'entrega_nombre': entrega['nombre_completo'] or NOMBRE_ENTREGA_POR_DEFECTO,
            'recibe_id': receptor['id'],
            'recibe_nombre': receptor['nombre_completo'],
            'recibe_email': receptor['email'],
        })
        db.insert_items_acta(acta_id, [snapshot_item(e) for e in equipos])
        db.insert_firma_acta(acta_id, 'entrega', firma_entrega, entrega['id'])

        for equipo in equipos:
            if not db.reservar_equipo_para_acta(equipo['id'], acta_id, entrega['id'], receptor['id']):
                raise ErrorConflicto(f"El equipo {equipo['codigo_inventario']} fue reclamado por otra acta. "
                                     "Actualice la lista y vuelva a intentarlo.")

    codigos = ", ".join(e['codigo_inventario'] for e in equipos)
    db.registrar_movimiento_sistema("Creación Acta Interna",
                                    f"Acta N° {consecutivo} para {receptor['nombre_completo']} con equipos: {codigos}",
                                    usuario_logueado['username'])
    return {'id': acta_id, 'consecutivo': consecutivo}


@requiere_permiso("aceptar_acta_interna")
def aceptar_acta_interna(db: DatabaseManager, usuario_logueado: dict, acta_id, firma_recibe: Firma) -> Dict:
    """
    Acepta el acta con la firma de quien recibe y libera sus equipos.
    Una segunda aceptación falla con 'wrong-state' sin tocar nada.
    """
    acta_id = _normalizar_id_acta(acta_id)
    contenido_firma = _normalizar_firma(firma_recibe, "quien recibe")

    with db.transaccion():
        receptor = _verificar_usuario_vigente(db, usuario_logueado)
        acta = db.get_acta_interna_by_id(acta_id)
        if not acta:
            raise ErrorNoEncontrado("El acta no existe.")
        if acta['estado'] != ACTA_ENVIADA:
            raise ErrorConflicto("Esta acta ya fue aceptada o no está en estado Enviada.", "wrong-state")
        if acta['recibe_id'] != receptor['id']:
            raise ErrorAutorizacion("No es el receptor asignado para esta acta.")

        if not db.marcar_acta_aceptada(acta_id):
            raise ErrorConflicto("Esta acta ya fue aceptada o no está en estado Enviada.", "wrong-state")
        db.insert_firma_acta(acta_id, 'recibe', contenido_firma, receptor['id'])
        for item in acta['items']:
            if not db.liberar_equipo_de_acta(item['equipo_id'], acta_id, receptor['id']):
                raise ErrorConflicto(f"El equipo {item['codigo_inventario']} ya no está reservado para esta acta.")

    db.registrar_movimiento_sistema("Aceptación Acta Interna",
                                    f"Acta N° {acta['consecutivo']} aceptada ({len(acta['items'])} equipos)",
                                    usuario_logueado['username'])
    return db.get_acta_interna_by_id(acta_id)


@requiere_permiso("reasignar_receptor_acta")
def reasignar_receptor_acta(db: DatabaseManager, usuario_logueado: dict, acta_id, recibe_id=None,
                            recibe_email: Optional[str] = None) -> Dict:
    """
    Cambia la auxiliar destinataria de un acta todavía Enviada (por ejemplo, si la
    cuenta original fue desactivada). Los equipos siguen reservados para la misma acta.
    """
    acta_id = _normalizar_id_acta(acta_id)
    with db.transaccion():
        _verificar_usuario_vigente(db, usuario_logueado)
        acta = db.get_acta_interna_by_id(acta_id)
        if not acta:
            raise ErrorNoEncontrado("El acta no existe.")
        if acta['estado'] != ACTA_ENVIADA:
            raise ErrorConflicto("Solo se puede reasignar un acta en estado Enviada.", "wrong-state")
        receptor = _resolver_receptor(db, recibe_id, recibe_email)
        if not db.update_acta_receptor(acta_id, receptor['id'], receptor['nombre_completo'], receptor['email']):
            raise ErrorConflicto("El acta cambió de estado durante la reasignación.", "wrong-state")
        db.update_equipos_recibe_pendiente(acta_id, receptor['id'])

    db.registrar_movimiento_sistema("Reasignación Acta Interna",
                                    f"Acta N° {acta['consecutivo']}: {acta['recibe_nombre']} -> {receptor['nombre_completo']}",
                                    usuario_logueado['username'])
    return db.get_acta_interna_by_id(acta_id)


@requiere_permiso("reconstruir_flags")
def reconstruir_flags_visitador(db: DatabaseManager, usuario_logueado: dict) -> Dict[str, int]:
    """
    Herramienta de reparación: recalcula los flags derivados de asignaciones activas
    (pacientes.tiene_asignacion_activa, equipos.asignado_activo). No toca reservas de
    actas, custodia ni disponibilidad para entrega. Ejecutarla dos veces no cambia nada.
    """
    with db.transaccion():
        resultado = {
            'pacientes_activos': len(db.get_ids_pacientes_con_asignacion_activa()),
            'equipos_activos': len(db.get_ids_equipos_con_asignacion_activa()),
        }
        resultado.update(db.recalcular_flags_asignacion())

    db.registrar_movimiento_sistema("Reconstrucción de Flags",
                                    f"Pacientes activos: {resultado['pacientes_activos']}, equipos activos: {resultado['equipos_activos']}, "
                                    f"registros actualizados: {resultado['pacientes_actualizados'] + resultado['equipos_actualizados']}",
                                    usuario_logueado['username'])
    return resultado

# --- CONSULTAS ---

def listar_actas_visibles(db: DatabaseManager, usuario_logueado: dict) -> List[Dict]:
    return filtrar_actas_visibles(db.get_all_actas_internas(), usuario_logueado)


def obtener_acta_interna(db: DatabaseManager, usuario_logueado: dict, acta_id) -> Dict:
    acta = db.get_acta_interna_by_id(_normalizar_id_acta(acta_id))
    if not acta:
        raise ErrorNoEncontrado("El acta no existe.")
    if not filtrar_actas_visibles([acta], usuario_logueado):
        raise ErrorAutorizacion("No tiene acceso a esta acta.")
    return acta
