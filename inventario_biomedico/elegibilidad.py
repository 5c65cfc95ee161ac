# inventario_biomedico/elegibilidad.py
"""
Reglas para decidir qué equipos pueden entrar en una nueva acta interna.

Son funciones puras: la pantalla de creación las usa para acotar la búsqueda y el
motor de actas las vuelve a aplicar dentro de la transacción contra el estado vivo.
"""
from typing import Dict, Iterable, List, Optional, Set
from .config import ESTADO_DISPONIBLE, ROL_INGENIERO, LIMITE_BUSQUEDA

MOTIVO_ASIGNADO = "asignado-a-paciente"
MOTIVO_NO_DISPONIBLE = "estado-no-disponible"
MOTIVO_ACTA_PENDIENTE = "acta-pendiente"
MOTIVO_OTRO_CUSTODIO = "custodio-distinto"

DESCRIPCION_MOTIVOS = {
    MOTIVO_ASIGNADO: "tiene una asignación activa a paciente",
    MOTIVO_NO_DISPONIBLE: "no está en estado Disponible",
    MOTIVO_ACTA_PENDIENTE: "ya está en un acta interna pendiente",
    MOTIVO_OTRO_CUSTODIO: "está bajo la custodia de otro usuario",
}


def motivo_no_elegible(equipo: Dict, ids_con_asignacion_activa: Set[int], usuario: Dict) -> Optional[str]:
    """Devuelve el primer motivo por el que el equipo no es elegible, o None si lo es."""
    if equipo['id'] in ids_con_asignacion_activa:
        return MOTIVO_ASIGNADO
    if equipo.get('estado') != ESTADO_DISPONIBLE:
        return MOTIVO_NO_DISPONIBLE
    if equipo.get('acta_pendiente_id'):
        return MOTIVO_ACTA_PENDIENTE
    custodio = equipo.get('custodio_id')
    # Sin custodio registrado no se filtra.
    if usuario.get('nombre_rol') == ROL_INGENIERO and custodio and custodio != usuario.get('id'):
        return MOTIVO_OTRO_CUSTODIO
    return None


def es_elegible(equipo: Dict, ids_con_asignacion_activa: Set[int], usuario: Dict) -> bool:
    return motivo_no_elegible(equipo, ids_con_asignacion_activa, usuario) is None


def filtrar_equipos_transferibles(equipos: Iterable[Dict], ids_con_asignacion_activa: Set[int], usuario: Dict) -> List[Dict]:
    return [e for e in equipos if es_elegible(e, ids_con_asignacion_activa, usuario)]


def buscar_equipos(transferibles: Iterable[Dict], consulta: str, seleccionados: Iterable[int] = (),
                   limite: int = LIMITE_BUSQUEDA) -> List[Dict]:
    """Búsqueda por código, serie, nombre, marca o modelo. Sin texto no devuelve nada."""
    q = (consulta or "").strip().lower()
    if not q:
        return []
    ya_elegidos = set(seleccionados)
    resultado = []
    for equipo in transferibles:
        if equipo['id'] in ya_elegidos:
            continue
        campos = (equipo.get(c) or "" for c in ('codigo_inventario', 'numero_serie', 'nombre', 'marca', 'modelo'))
        if any(q in campo.lower() for campo in campos):
            resultado.append(equipo)
            if len(resultado) >= limite:
                break
    return resultado
