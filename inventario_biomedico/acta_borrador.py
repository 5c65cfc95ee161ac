# inventario_biomedico/acta_borrador.py
from typing import Dict, List, Optional
from .config import (ACTA_ENVIADA, AREA_POR_DEFECTO, NOMBRE_RECEPTOR_POR_DEFECTO,
                     NOMBRE_ENTREGA_POR_DEFECTO)
from .validators import normalizar_fecha_iso


def snapshot_item(equipo: Dict) -> Dict:
    """Copia congelada de los datos descriptivos del equipo al momento de la entrega."""
    return {
        'equipo_id': equipo['id'],
        'codigo_inventario': equipo.get('codigo_inventario') or '',
        'numero_serie': equipo.get('numero_serie') or '',
        'nombre': equipo.get('nombre') or '',
        'marca': equipo.get('marca') or '',
        'modelo': equipo.get('modelo') or '',
        'estado': equipo.get('estado') or '',
    }


def construir_borrador(equipos_por_id: Dict[int, Dict], ids_seleccionados: List[int], usuario: Dict,
                       receptor: Optional[Dict], datos: Dict) -> Dict:
    """Arma la vista previa de un acta sin guardar. No modifica nada."""
    items = [snapshot_item(equipos_por_id[i]) for i in ids_seleccionados if i in equipos_por_id]
    receptor = receptor or {}
    return {
        'id': None,
        'consecutivo': 0,
        'fecha': normalizar_fecha_iso(datos.get('fecha')),
        'ciudad': (datos.get('ciudad') or '').strip(),
        'sede': (datos.get('sede') or '').strip(),
        'area': (datos.get('area') or '').strip() or AREA_POR_DEFECTO,
        'cargo_recibe': (datos.get('cargo_recibe') or '').strip(),
        'observaciones': (datos.get('observaciones') or '').strip(),
        'entrega_id': usuario.get('id'),
        'entrega_nombre': usuario.get('nombre_completo') or NOMBRE_ENTREGA_POR_DEFECTO,
        'recibe_id': receptor.get('id'),
        'recibe_nombre': receptor.get('nombre_completo') or receptor.get('nombre') or NOMBRE_RECEPTOR_POR_DEFECTO,
        'recibe_email': datos.get('recibe_email') or receptor.get('email'),
        'estado': ACTA_ENVIADA,
        'items': items,
        'firma_entrega': datos.get('firma_entrega') or None,
        'firma_recibe': None,
    }
