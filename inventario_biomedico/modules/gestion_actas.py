# inventario_biomedico/modules/gestion_actas.py
import os
from typing import Optional
from colorama import Fore, Style
from .. import ui
from ..acta_borrador import construir_borrador
from ..actas_internas import (crear_acta_interna, aceptar_acta_interna, reasignar_receptor_acta,
                              listar_receptores_elegibles, listar_equipos_elegibles,
                              listar_actas_visibles, obtener_acta_interna, reconstruir_flags_visitador)
from ..config import ACTA_ENVIADA, AREA_POR_DEFECTO
from ..database import DatabaseManager
from ..elegibilidad import buscar_equipos
from ..errores import ErrorActaInterna

# --- FUNCIONES AUXILIARES ---

def _leer_firma(quien: str) -> Optional[bytes]:
    """Pide la ruta de la imagen de la firma y devuelve su contenido."""
    ruta = ui.solicitar_input(Fore.YELLOW + f"Ruta de la imagen con la firma de {quien}: ").strip('"')
    if not ruta:
        return None
    if not os.path.isfile(ruta):
        print(Fore.RED + "❌ El archivo de la firma no existe.")
        return None
    with open(ruta, "rb") as archivo:
        return archivo.read()

def _seleccionar_equipos(usuario_logueado: dict, transferibles: list) -> list:
    """Búsqueda en vivo sobre los equipos elegibles; devuelve los ids elegidos en orden."""
    seleccionados = []
    por_id = {e['id']: e for e in transferibles}
    while True:
        ui.mostrar_encabezado("Nueva Acta Interna - Equipos", usuario_logueado=usuario_logueado)
        print(Fore.CYAN + f"Equipos seleccionados ({len(seleccionados)}): " + Style.RESET_ALL +
              ", ".join(por_id[i]['codigo_inventario'] for i in seleccionados))
        consulta = ui.solicitar_input(Fore.YELLOW + "\nBuscar (código, serie, nombre, marca, modelo) o 'f' para terminar: ")
        if consulta.lower() == 'f':
            return seleccionados
        resultados = buscar_equipos(transferibles, consulta, seleccionados)
        if not resultados:
            print(Fore.YELLOW + "Sin resultados."); ui.pausar_pantalla(); continue
        ui.mostrar_tabla_equipos(resultados, numerar=True)
        eleccion = ui.solicitar_input(Fore.YELLOW + "Números a agregar separados por coma (Enter para ninguno): ")
        for parte in eleccion.split(","):
            parte = parte.strip()
            if parte.isdigit() and 1 <= int(parte) <= len(resultados):
                seleccionados.append(resultados[int(parte) - 1]['id'])

def _seleccionar_receptor(receptores: list) -> Optional[dict]:
    print(Fore.CYAN + "\nAuxiliares administrativas disponibles:")
    for i, r in enumerate(receptores, 1):
        print(f"  {i}. {r['nombre']} <{r['email']}>")
    try:
        indice = int(ui.solicitar_input(Fore.YELLOW + "Opción: ")) - 1
        return receptores[indice] if 0 <= indice < len(receptores) else None
    except ValueError:
        return None

# --- FLUJOS ---

def crear_nueva_acta(db: DatabaseManager, usuario_logueado: dict):
    try:
        receptores = listar_receptores_elegibles(db, usuario_logueado)
        transferibles = listar_equipos_elegibles(db, usuario_logueado)
    except ErrorActaInterna as e:
        ui.mostrar_error(e); ui.pausar_pantalla(); return

    if not receptores:
        print(Fore.RED + "\n❌ No hay auxiliares administrativas activas para recibir el acta."); ui.pausar_pantalla(); return
    if not transferibles:
        print(Fore.YELLOW + "\nNo tiene equipos disponibles para entregar."); ui.pausar_pantalla(); return

    try:
        seleccionados = _seleccionar_equipos(usuario_logueado, transferibles)
        if not seleccionados:
            print(Fore.YELLOW + "\nNo seleccionó equipos. Acta cancelada."); ui.pausar_pantalla(); return

        ui.mostrar_encabezado("Nueva Acta Interna - Datos", usuario_logueado=usuario_logueado)
        receptor = _seleccionar_receptor(receptores)
        if not receptor:
            print(Fore.RED + "Receptor no válido."); ui.pausar_pantalla(); return
        datos = {
            'recibe_id': receptor['id'],
            'ciudad': ui.solicitar_input(Fore.YELLOW + "Ciudad: "),
            'sede': ui.solicitar_input(Fore.YELLOW + "Sede: "),
            'area': ui.solicitar_input(Fore.YELLOW + f"Área [{AREA_POR_DEFECTO}]: ", default=AREA_POR_DEFECTO),
            'cargo_recibe': ui.solicitar_input(Fore.YELLOW + "Cargo de quien recibe: "),
            'observaciones': ui.solicitar_input(Fore.YELLOW + "Observaciones (opcional): "),
            'fecha': ui.solicitar_input(Fore.YELLOW + "Fecha (AAAA-MM-DD, Enter para hoy): "),
            'equipo_ids': seleccionados,
        }

        ui.mostrar_encabezado("Vista Previa del Acta", usuario_logueado=usuario_logueado)
        borrador = construir_borrador({e['id']: e for e in transferibles}, seleccionados, usuario_logueado,
                                      {'id': receptor['id'], 'nombre': receptor['nombre'], 'email': receptor['email']}, datos)
        ui.mostrar_detalle_acta(borrador)

        datos['firma_entrega'] = _leer_firma("quien entrega")
        resultado = crear_acta_interna(db, usuario_logueado, datos)
        print(Fore.GREEN + f"\n✅ Acta interna N° {resultado['consecutivo']} enviada a {receptor['nombre']}.")
    except ErrorActaInterna as e:
        ui.mostrar_error(e)
    except KeyboardInterrupt:
        print(Fore.CYAN + "\n\n🚫 Operación cancelada.")
    ui.pausar_pantalla()

def ver_actas(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Actas Internas", usuario_logueado=usuario_logueado)
    actas = listar_actas_visibles(db, usuario_logueado)
    ui.mostrar_tabla_actas(actas)
    if actas:
        numero = ui.solicitar_input(Fore.YELLOW + "N° de acta para ver el detalle (Enter para volver): ")
        acta = next((a for a in actas if str(a['consecutivo']) == numero), None)
        if acta:
            ui.mostrar_encabezado(f"Acta Interna N° {acta['consecutivo']}", usuario_logueado=usuario_logueado)
            ui.mostrar_detalle_acta(obtener_acta_interna(db, usuario_logueado, acta['id']))
    ui.pausar_pantalla()

def aceptar_acta(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Aceptar Acta Interna", usuario_logueado=usuario_logueado)
    pendientes = [a for a in listar_actas_visibles(db, usuario_logueado) if a['estado'] == ACTA_ENVIADA]
    ui.mostrar_tabla_actas(pendientes)
    if not pendientes:
        ui.pausar_pantalla(); return
    numero = ui.solicitar_input(Fore.YELLOW + "N° de acta a aceptar: ")
    acta = next((a for a in pendientes if str(a['consecutivo']) == numero), None)
    if not acta:
        print(Fore.RED + "Acta no válida."); ui.pausar_pantalla(); return
    try:
        ui.mostrar_detalle_acta(acta)
        if ui.solicitar_input(Fore.YELLOW + "\n¿Confirma que recibió todos los equipos? (s/n): ").lower() != 's':
            print(Fore.CYAN + "Aceptación cancelada."); ui.pausar_pantalla(); return
        aceptar_acta_interna(db, usuario_logueado, acta['id'], _leer_firma("quien recibe"))
        print(Fore.GREEN + f"\n✅ Acta N° {acta['consecutivo']} aceptada. Los equipos quedan habilitados para entrega.")
    except ErrorActaInterna as e:
        ui.mostrar_error(e)
    except KeyboardInterrupt:
        print(Fore.CYAN + "\n\n🚫 Operación cancelada.")
    ui.pausar_pantalla()

def reasignar_acta(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Reasignar Receptor de Acta", usuario_logueado=usuario_logueado)
    pendientes = [a for a in listar_actas_visibles(db, usuario_logueado) if a['estado'] == ACTA_ENVIADA]
    ui.mostrar_tabla_actas(pendientes)
    if not pendientes:
        ui.pausar_pantalla(); return
    numero = ui.solicitar_input(Fore.YELLOW + "N° de acta a reasignar: ")
    acta = next((a for a in pendientes if str(a['consecutivo']) == numero), None)
    if not acta:
        print(Fore.RED + "Acta no válida."); ui.pausar_pantalla(); return
    try:
        receptor = _seleccionar_receptor(listar_receptores_elegibles(db, usuario_logueado))
        if not receptor:
            print(Fore.RED + "Receptor no válido."); ui.pausar_pantalla(); return
        reasignar_receptor_acta(db, usuario_logueado, acta['id'], recibe_id=receptor['id'])
        print(Fore.GREEN + f"\n✅ Acta N° {acta['consecutivo']} reasignada a {receptor['nombre']}.")
    except ErrorActaInterna as e:
        ui.mostrar_error(e)
    ui.pausar_pantalla()

def reconstruir_flags(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Reconstruir Flags de Asignación", usuario_logueado=usuario_logueado)
    try:
        resultado = reconstruir_flags_visitador(db, usuario_logueado)
        ui.mostrar_panel_info("Resultado", {
            "Pacientes con asignación": resultado['pacientes_activos'],
            "Equipos con asignación": resultado['equipos_activos'],
            "Pacientes actualizados": resultado['pacientes_actualizados'],
            "Equipos actualizados": resultado['equipos_actualizados'],
        })
    except ErrorActaInterna as e:
        ui.mostrar_error(e)
    ui.pausar_pantalla()
