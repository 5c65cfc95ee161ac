# inventario_biomedico/menus.py
import time
from colorama import Fore, Style
from . import ui
from .auth import cambiar_contrasena_usuario, tiene_permiso
from .database import DatabaseManager
from .modules.gestion_accesos import registrar_nuevo_usuario, gestionar_usuarios_existentes
from .modules.gestion_actas import (crear_nueva_acta, ver_actas, aceptar_acta, reasignar_acta,
                                    reconstruir_flags)
from .modules.gestion_equipos import registrar_nuevo_equipo, ver_inventario, cambiar_estado_equipo
from .modules.gestion_pacientes import nuevo_paciente, entregar_equipo, recibir_devolucion, ver_pacientes
from .modules.reportes import exportar_actas_excel


def _ejecutar_menu(db: DatabaseManager, usuario_logueado: dict, titulo: str, opciones: list):
    """Bucle genérico: `opciones` es una lista de (texto, funcion) ya filtrada por permisos."""
    opciones = opciones + [("Volver al Menú Principal", None)]
    while True:
        ui.mostrar_encabezado(titulo, usuario_logueado=usuario_logueado)
        ui.mostrar_menu([texto for texto, _ in opciones])
        opcion = ui.solicitar_input(Fore.YELLOW + "Seleccione una opción: ")
        if not opcion.isdigit() or not 1 <= int(opcion) <= len(opciones):
            print(Fore.RED + "Opción no válida."); ui.pausar_pantalla(); continue
        _, funcion = opciones[int(opcion) - 1]
        if funcion is None:
            break
        funcion(db, usuario_logueado)

def menu_equipos(db: DatabaseManager, usuario_logueado: dict):
    opciones = [("Ver Inventario", ver_inventario)]
    if tiene_permiso(usuario_logueado, "registrar_equipo"):
        opciones += [("Registrar Nuevo Equipo", registrar_nuevo_equipo), ("Cambiar Estado de Equipo", cambiar_estado_equipo)]
    _ejecutar_menu(db, usuario_logueado, "Módulo de Equipos Biomédicos", opciones)

def menu_actas_internas(db: DatabaseManager, usuario_logueado: dict):
    opciones = [("Ver Actas Internas", ver_actas)]
    if tiene_permiso(usuario_logueado, "crear_acta_interna"):
        opciones.append(("Crear Acta Interna", crear_nueva_acta))
    if tiene_permiso(usuario_logueado, "aceptar_acta_interna"):
        opciones.append(("Aceptar Acta Interna", aceptar_acta))
    if tiene_permiso(usuario_logueado, "reasignar_receptor_acta"):
        opciones.append(("Reasignar Receptor de Acta", reasignar_acta))
    if tiene_permiso(usuario_logueado, "reconstruir_flags"):
        opciones.append(("Reconstruir Flags de Asignación", reconstruir_flags))
    _ejecutar_menu(db, usuario_logueado, "Módulo de Actas Internas", opciones)

def menu_pacientes(db: DatabaseManager, usuario_logueado: dict):
    opciones = [
        ("Ver Pacientes", ver_pacientes), ("Registrar Paciente", nuevo_paciente),
        ("Entregar Equipo a Paciente", entregar_equipo), ("Registrar Devolución", recibir_devolucion),
    ]
    _ejecutar_menu(db, usuario_logueado, "Módulo de Pacientes", opciones)

def menu_gestion_accesos(db: DatabaseManager, usuario_logueado: dict):
    opciones = [("Cambiar mi Contraseña", cambiar_contrasena_usuario)]
    if tiene_permiso(usuario_logueado, "gestionar_usuarios"):
        opciones = [
            ("Registrar Nuevo Usuario", registrar_nuevo_usuario),
            ("Gestionar Usuarios Existentes", gestionar_usuarios_existentes),
            ("Ver Log de Actividad del Sistema", _ver_log_sistema),
        ] + opciones
    _ejecutar_menu(db, usuario_logueado, "Módulo de Gestión de Accesos", opciones)

def _ver_log_sistema(db: DatabaseManager, usuario_logueado: dict):
    """Muestra el log de actividad del sistema con paginación."""
    page, page_size = 1, 15
    while True:
        ui.mostrar_encabezado("Log de Actividad del Sistema", usuario_logueado=usuario_logueado)
        logs, total_pages = db.get_log_sistema_paginated(page, page_size)
        ui.mostrar_log_sistema(logs)

        if logs:
            print(f"Página {page} de {total_pages}")
            prompt = "Presione (s) para siguiente, (a) para anterior, o (q) para salir: "
            opcion = ui.solicitar_input(Fore.CYAN + prompt).lower()

            if opcion == 's' and page < total_pages: page += 1
            elif opcion == 'a' and page > 1: page -= 1
            elif opcion == 'q': break
        else:
            ui.pausar_pantalla()
            break


def mostrar_menu_principal(db: DatabaseManager, usuario_logueado: dict):
    """Bucle principal que muestra el menú después de un inicio de sesión exitoso."""
    while True:
        ui.mostrar_encabezado("Menú Principal", usuario_logueado=usuario_logueado)

        # Menú dinámico basado en permisos
        modulos = []
        if tiene_permiso(usuario_logueado, "ver_inventario_completo"):
            modulos.append(("🩺 Equipos Biomédicos", menu_equipos))
        if any(tiene_permiso(usuario_logueado, p) for p in
               ("crear_acta_interna", "aceptar_acta_interna", "ver_todas_actas_internas")):
            modulos.append(("📄 Actas Internas", menu_actas_internas))
        if tiene_permiso(usuario_logueado, "gestionar_asignaciones"):
            modulos.append(("🧑 Pacientes y Asignaciones", menu_pacientes))
        if tiene_permiso(usuario_logueado, "generar_reportes"):
            modulos.append(("📊 Reporte de Actas (Excel)", exportar_actas_excel))
        modulos.append(("👤 Gestión de Accesos", menu_gestion_accesos))

        opciones = {str(i): modulo for i, modulo in enumerate(modulos, 1)}
        opciones[str(len(opciones) + 1)] = ("↪️  Cerrar Sesión", None)

        for key, (texto, _) in opciones.items():
            print(Fore.YELLOW + f"{key}." + Style.RESET_ALL + f" {texto}")
        ui.mostrar_menu([])

        opcion_seleccionada = ui.solicitar_input(Fore.YELLOW + "Seleccione un módulo: ")

        if opcion_seleccionada in opciones:
            texto, funcion = opciones[opcion_seleccionada]
            if funcion:
                funcion(db, usuario_logueado)
                # Los cambios de nombre o rol se reflejan sin cerrar sesión
                usuario_logueado = db.get_user_by_id(usuario_logueado['id']) or usuario_logueado
            else:
                print(Fore.GREEN + "\nCerrando sesión..."); time.sleep(1); break
        else:
            print(Fore.RED + "\n❌ Opción no válida."); ui.pausar_pantalla()
