# inventario_biomedico/visibilidad.py
from typing import Dict, Iterable, List
from .config import ROL_INGENIERO, ROL_AUXILIAR, ROLES_PERMISOS


def filtrar_actas_visibles(actas: Iterable[Dict], usuario: Dict) -> List[Dict]:
    """
    Ingeniero: solo las actas que entregó. Auxiliar: solo las dirigidas a ella.
    Roles con 'ver_todas_actas_internas': todas. Cualquier otro rol: ninguna.
    """
    if not usuario or not usuario.get('id'):
        return []
    rol = usuario.get('nombre_rol')
    if rol == ROL_INGENIERO:
        return [a for a in actas if a['entrega_id'] == usuario['id']]
    if rol == ROL_AUXILIAR:
        return [a for a in actas if a['recibe_id'] == usuario['id']]
    if "ver_todas_actas_internas" in ROLES_PERMISOS.get(rol, set()):
        return list(actas)
    return []
