# inventario_biomedico/modules/gestion_equipos.py
import textwrap
from colorama import Fore, Style
from .. import ui
from ..auth import tiene_permiso
from ..config import ESTADOS_EQUIPO, ESTADO_ASIGNADO
from ..database import DatabaseManager
from ..equipos import cambiar_estado_equipo as cambiar_estado
from ..errores import ErrorActaInterna
from ..validators import (validar_campo_general, validar_codigo_inventario, validar_serial,
                          formatear_observacion)

# --- FUNCIONES AUXILIARES PARA EL FORMULARIO ---

def _procesar_paso_formulario(db: DatabaseManager, campo_actual: str, datos_equipo: dict, prompts: dict) -> bool:
    """Procesa un único campo del formulario. Devuelve True si el valor quedó registrado."""
    valor = ui.solicitar_input(Fore.YELLOW + prompts.get(campo_actual, f"Ingrese {campo_actual}") + ": ")

    if campo_actual == "Observaciones":
        datos_equipo[campo_actual] = formatear_observacion(valor)
        return True

    if not valor:
        print(Fore.RED + "Este campo no puede estar vacío."); ui.pausar_pantalla()
        return False

    if campo_actual == "Código de inventario":
        codigo = valor.upper()
        if not validar_codigo_inventario(codigo):
            print(Fore.RED + "Formato de código inválido (mín. 4 caracteres: letras, números y guion)."); ui.pausar_pantalla()
            return False
        if db.get_equipo_by_codigo(codigo):
            print(Fore.RED + "❌ Este código ya está registrado."); ui.pausar_pantalla()
            return False
        datos_equipo[campo_actual] = codigo
        return True

    if campo_actual == "Número de serie":
        if not validar_serial(valor):
            print(Fore.RED + "Serial inválido. No se permiten espacios ni símbolos."); ui.pausar_pantalla()
            return False
        datos_equipo[campo_actual] = valor.upper()
        return True

    if not validar_campo_general(valor):
        print(Fore.RED + f"{campo_actual} inválido."); ui.pausar_pantalla()
        return False
    datos_equipo[campo_actual] = valor.upper() if campo_actual == "Modelo" else valor.title()
    return True

# --- REGISTRO ---

def registrar_nuevo_equipo(db: DatabaseManager, usuario_logueado: dict):
    """Registra un equipo biomédico. Queda sin habilitar para pacientes hasta pasar por un acta interna."""
    if not tiene_permiso(usuario_logueado, "registrar_equipo"):
        print(Fore.RED + "\n❌ Su rol no permite registrar equipos."); ui.pausar_pantalla(); return

    campos = ["Código de inventario", "Número de serie", "Nombre", "Marca", "Modelo", "Observaciones"]
    prompts = {
        "Código de inventario": "Ingrese el código de inventario (ej: MBG-001)",
        "Número de serie": "Digite el número de serie",
        "Nombre": "Nombre del equipo (ej: Monitor de signos vitales)",
        "Observaciones": "Agregue observaciones (opcional)"
    }
    datos_equipo = {campo: "" for campo in campos}
    indice_actual = 0

    try:
        while indice_actual < len(campos):
            campo_actual = campos[indice_actual]
            ui.mostrar_formulario_interactivo("Registrar Equipo Biomédico", campos, datos_equipo, indice_actual, usuario_logueado)
            if _procesar_paso_formulario(db, campo_actual, datos_equipo, prompts):
                indice_actual += 1

        ui.mostrar_encabezado("Resumen del Nuevo Equipo", usuario_logueado=usuario_logueado)
        ancho_etiqueta, ancho_disponible = 25, 80 - 2 - 25 - 2
        for campo, valor in datos_equipo.items():
            etiqueta = f"  {campo.ljust(ancho_etiqueta)}: "
            lineas = textwrap.wrap(valor, width=ancho_disponible) or [""]
            print(f"{etiqueta}{Fore.GREEN}{lineas[0]}{Style.RESET_ALL}")
            for linea in lineas[1:]:
                print(f"{' ' * len(etiqueta)}{Fore.GREEN}{linea}{Style.RESET_ALL}")

        print(Fore.WHITE + "─" * 80)
        codigo = datos_equipo["Código de inventario"]
        confirmacion = ui.solicitar_input(Fore.YELLOW + f"Para confirmar, escriba el código del equipo ({codigo}): ").upper()
        if confirmacion != codigo:
            print(Fore.RED + "\nEl código no coincide. Registro cancelado."); return

        equipo_id = db.insert_equipo({
            'codigo_inventario': codigo, 'numero_serie': datos_equipo["Número de serie"],
            'nombre': datos_equipo["Nombre"], 'marca': datos_equipo["Marca"], 'modelo': datos_equipo["Modelo"],
            'observaciones': datos_equipo["Observaciones"]
        }, usuario_logueado['id'])
        if equipo_id is None:
            print(Fore.RED + "\n❌ No se pudo registrar: el código ya existe."); return
        db.registrar_movimiento_sistema("Registro de Equipo", f"Nuevo equipo registrado: {codigo}", usuario_logueado['username'])
        print(Fore.GREEN + f"\n✅ ¡Equipo {codigo} registrado exitosamente!")
    except KeyboardInterrupt:
        print(Fore.CYAN + "\n\n🚫 Operación cancelada.")
    finally:
        ui.pausar_pantalla()

# --- CONSULTA Y ESTADO ---

def ver_inventario(db: DatabaseManager, usuario_logueado: dict):
    ui.mostrar_encabezado("Inventario de Equipos", usuario_logueado=usuario_logueado)
    ui.mostrar_tabla_equipos(db.get_all_equipos())
    ui.pausar_pantalla()

def cambiar_estado_equipo(db: DatabaseManager, usuario_logueado: dict):
    """Pasa un equipo a Mantenimiento, Dado de baja o de vuelta a Disponible."""
    if not tiene_permiso(usuario_logueado, "registrar_equipo"):
        print(Fore.RED + "\n❌ Su rol no permite cambiar el estado de equipos."); ui.pausar_pantalla(); return

    ui.mostrar_encabezado("Cambiar Estado de Equipo", usuario_logueado=usuario_logueado)
    codigo = ui.solicitar_input(Fore.YELLOW + "Código de inventario: ").upper()
    equipo = db.get_equipo_by_codigo(codigo)
    if not equipo:
        print(Fore.RED + "❌ Equipo no encontrado."); ui.pausar_pantalla(); return
    if equipo['acta_pendiente_id'] or equipo['estado'] == ESTADO_ASIGNADO:
        print(Fore.RED + "❌ El equipo está en un acta pendiente o asignado a un paciente."); ui.pausar_pantalla(); return

    opciones = [e for e in ESTADOS_EQUIPO if e not in (ESTADO_ASIGNADO, equipo['estado'])]
    ui.mostrar_menu(opciones)
    try:
        nuevo_estado = opciones[int(ui.solicitar_input(Fore.YELLOW + "Nuevo estado: ")) - 1]
    except (ValueError, IndexError):
        print(Fore.RED + "Opción no válida."); ui.pausar_pantalla(); return

    try:
        cambiar_estado(db, usuario_logueado, equipo['id'], nuevo_estado)
    except ErrorActaInterna as e:
        ui.mostrar_error(e); ui.pausar_pantalla(); return
    print(Fore.GREEN + f"\n✅ Estado actualizado a '{nuevo_estado}'."); ui.pausar_pantalla()
