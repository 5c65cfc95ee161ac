# inventario_biomedico/config.py

# --- Roles y Permisos ---
ROL_ADMINISTRADOR = "Administrador"
ROL_GERENCIA = "Gerencia"
ROL_INGENIERO = "Ingeniero Biomédico"
ROL_AUXILIAR = "Auxiliar Administrativa"
ROL_VISITADOR = "Visitador"

ROLES = [ROL_ADMINISTRADOR, ROL_GERENCIA, ROL_INGENIERO, ROL_AUXILIAR, ROL_VISITADOR]

ROLES_PERMISOS = {
    ROL_ADMINISTRADOR: {
        "gestionar_usuarios",
        "registrar_equipo",
        "ver_inventario_completo",
        "ver_todas_actas_internas",
        "reasignar_receptor_acta",
        "listar_receptores",
        "reconstruir_flags",
        "gestionar_asignaciones",
        "generar_reportes"
    },
    ROL_GERENCIA: {
        "ver_inventario_completo",
        "ver_todas_actas_internas",
        "generar_reportes"
    },
    ROL_INGENIERO: {
        "registrar_equipo",
        "ver_inventario_completo",
        "crear_acta_interna",
        "listar_receptores",
        "reconstruir_flags",
        "generar_reportes"
    },
    ROL_AUXILIAR: {
        "ver_inventario_completo",
        "aceptar_acta_interna",
        "gestionar_asignaciones",
        "generar_reportes"
    },
    ROL_VISITADOR: set()
}

# --- Estados ---
ESTADO_DISPONIBLE = "Disponible"
ESTADO_ASIGNADO = "Asignado"
ESTADO_MANTENIMIENTO = "Mantenimiento"
ESTADO_DADO_DE_BAJA = "Dado de baja"
ESTADOS_EQUIPO = [ESTADO_DISPONIBLE, ESTADO_ASIGNADO, ESTADO_MANTENIMIENTO, ESTADO_DADO_DE_BAJA]

ACTA_ENVIADA = "Enviada"
ACTA_ACEPTADA = "Aceptada"
ESTADOS_ACTA = [ACTA_ENVIADA, ACTA_ACEPTADA]

ASIGNACION_ACTIVA = "Activa"
ASIGNACION_FINALIZADA = "Finalizada"

# --- Actas internas ---
SERIE_ACTA_INTERNA = "acta_interna"
MAX_EQUIPOS_POR_ACTA = 200
AREA_POR_DEFECTO = "Biomédica"
NOMBRE_RECEPTOR_POR_DEFECTO = "AUXILIAR ADMINISTRATIVA"
NOMBRE_ENTREGA_POR_DEFECTO = "INGENIERO BIOMÉDICO"
LIMITE_BUSQUEDA = 25

FORMATO_FECHA = "%Y-%m-%d %H:%M:%S"
