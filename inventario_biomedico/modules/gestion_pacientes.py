# inventario_biomedico/modules/gestion_pacientes.py
from colorama import Fore, Style
from .. import ui
from ..asignaciones import registrar_paciente, asignar_equipo_a_paciente, finalizar_asignacion
from ..config import ESTADO_DISPONIBLE, ESTADO_MANTENIMIENTO
from ..database import DatabaseManager
from ..errores import ErrorActaInterna

def _mostrar_pacientes(pacientes: list):
    print(Style.BRIGHT + f"{'ID':<5} {'DOCUMENTO':<18} {'NOMBRE':<40} {'ASIGNACIÓN':<10}")
    print("─" * 80)
    for p in pacientes:
        marca = Fore.GREEN + "Activa" if p['tiene_asignacion_activa'] else Fore.WHITE + "-"
        print(f"{p['id']:<5} {p['numero_documento']:<18} {p['nombre_completo'][:39]:<40} {marca}{Style.RESET_ALL}")

def nuevo_paciente(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Registrar Paciente", usuario_logueado=usuario_logueado)
    try:
        nombre = ui.solicitar_input(Fore.YELLOW + "Nombre completo: ")
        documento = ui.solicitar_input(Fore.YELLOW + "Número de documento: ")
        registrar_paciente(db, usuario_logueado, nombre, documento)
        print(Fore.GREEN + "\n✅ Paciente registrado.")
    except ErrorActaInterna as e:
        ui.mostrar_error(e)
    ui.pausar_pantalla()

def entregar_equipo(db: DatabaseManager, usuario_logueado: dict):
    """Entrega a un paciente un equipo ya recibido por acta interna."""
    ui.mostrar_encabezado("Entregar Equipo a Paciente", usuario_logueado=usuario_logueado)
    _mostrar_pacientes(db.get_all_pacientes())
    try:
        paciente_id = int(ui.solicitar_input(Fore.YELLOW + "\nID del paciente: "))
        equipo = db.get_equipo_by_codigo(ui.solicitar_input(Fore.YELLOW + "Código de inventario del equipo: ").upper())
        if not equipo:
            print(Fore.RED + "❌ Equipo no encontrado."); ui.pausar_pantalla(); return
        asignar_equipo_a_paciente(db, usuario_logueado, paciente_id, equipo['id'])
        print(Fore.GREEN + f"\n✅ Equipo {equipo['codigo_inventario']} entregado.")
    except ValueError:
        print(Fore.RED + "ID no válido.")
    except ErrorActaInterna as e:
        ui.mostrar_error(e)
    ui.pausar_pantalla()

def recibir_devolucion(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Devolución de Equipo", usuario_logueado=usuario_logueado)
    equipo = db.get_equipo_by_codigo(ui.solicitar_input(Fore.YELLOW + "Código de inventario del equipo: ").upper())
    asignacion = db.get_asignacion_activa_por_equipo(equipo['id']) if equipo else None
    if not asignacion:
        print(Fore.RED + "❌ El equipo no tiene una asignación activa."); ui.pausar_pantalla(); return
    requiere_mantenimiento = ui.solicitar_input(Fore.YELLOW + "¿Requiere mantenimiento? (s/n): ").lower() == 's'
    try:
        finalizar_asignacion(db, usuario_logueado, asignacion['id'],
                             ESTADO_MANTENIMIENTO if requiere_mantenimiento else ESTADO_DISPONIBLE)
        print(Fore.GREEN + "\n✅ Devolución registrada.")
    except ErrorActaInterna as e:
        ui.mostrar_error(e)
    ui.pausar_pantalla()

def ver_pacientes(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Pacientes", usuario_logueado=usuario_logueado)
    _mostrar_pacientes(db.get_all_pacientes())
    ui.pausar_pantalla()
