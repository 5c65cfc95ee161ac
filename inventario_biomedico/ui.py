# inventario_biomedico/ui.py
import os
from typing import Dict, List, Sequence, Tuple
from colorama import init, Fore, Style, Back

try:
    import msvcrt
    def get_char(): return msvcrt.getch().decode('utf-8', errors='ignore')
except ImportError:
    import sys, tty, termios
    def get_char():
        fd = sys.stdin.fileno()
        previo = termios.tcgetattr(fd)
        try:
            tty.setraw(fd); ch = sys.stdin.read(1)
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, previo)
        return ch

init(autoreset=True)

ANCHO = 80

def _linea(caracter: str = "─", color: str = Fore.CYAN, ancho: int = ANCHO):
    print(color + caracter * ancho + Style.RESET_ALL)

def mostrar_encabezado(titulo: str, ancho: int = ANCHO, color: str = Fore.WHITE, usuario_logueado: dict = None):
    os.system('cls' if os.name == 'nt' else 'clear')
    _linea("═", Fore.WHITE + Style.BRIGHT, ancho)
    print(Back.WHITE + Style.DIM + Fore.BLACK + " Inventario de Equipos Biomédicos ".center(ancho) + Style.RESET_ALL)
    if usuario_logueado:
        sesion = f"{usuario_logueado['nombre_completo']} ({usuario_logueado['username']}) · {usuario_logueado['nombre_rol']}"
        print(Back.WHITE + Fore.BLACK + Style.BRIGHT + f" {sesion} ".center(ancho) + Style.RESET_ALL)
    _linea("═", Fore.WHITE + Style.BRIGHT, ancho)
    print("\n" + color + Style.BRIGHT + f" {titulo.upper()} ".center(ancho) + Style.RESET_ALL)
    _linea("─", color, ancho)

def mostrar_menu(opciones: List[str]):
    for numero, texto in enumerate(opciones, 1):
        print(f"{Fore.YELLOW}{numero}.{Style.RESET_ALL} {texto}")
    _linea("═", Fore.WHITE + Style.BRIGHT)

def pausar_pantalla():
    input(Fore.CYAN + "\nPresione Enter para continuar..." + Style.RESET_ALL)

def solicitar_input(prompt: str, default: str = "") -> str:
    return input(prompt + Style.RESET_ALL).strip() or default

def solicitar_contrasena_con_asteriscos(prompt: str) -> str:
    print(prompt, end="", flush=True)
    caracteres = []
    while True:
        char = get_char()
        if char in ('\r', '\n'):
            print(); return "".join(caracteres)
        if char == '\x03':
            raise KeyboardInterrupt
        if char in ('\b', '\x7f'):
            if caracteres:
                caracteres.pop(); print("\b \b", end="", flush=True)
        else:
            caracteres.append(char); print("*", end="", flush=True)

def mostrar_error(error: Exception):
    print(Fore.RED + f"\n❌ {getattr(error, 'mensaje', str(error))}" + Style.RESET_ALL)
    if getattr(error, 'reintentable', False):
        print(Fore.YELLOW + "   Actualice la información y vuelva a intentarlo." + Style.RESET_ALL)

def mostrar_formulario_interactivo(titulo: str, campos: List[str], datos: Dict, indice_actual: int, usuario_logueado: dict):
    mostrar_encabezado(titulo, color=Fore.BLUE, usuario_logueado=usuario_logueado)
    print(Fore.CYAN + "💡 Ctrl+C cancela el formulario." + Style.RESET_ALL)
    for i, campo in enumerate(campos):
        marca = Fore.YELLOW + " -> " if i == indice_actual else "    "
        valor = datos.get(campo)
        print(f"{marca}{campo.ljust(30)}: {Fore.GREEN + valor + Style.RESET_ALL if valor else ''}")
    _linea("─", Fore.WHITE)

def mostrar_panel_info(titulo: str, info_dict: Dict):
    print(Fore.CYAN + f"--- {titulo} ---" + Style.RESET_ALL)
    for clave, valor in info_dict.items():
        print(f"  {clave:<25}: {valor}")
    _linea("-", Fore.CYAN, len(titulo) + 8)

# --- TABLAS ---

def _imprimir_tabla(columnas: Sequence[Tuple[str, int]], filas: List[Sequence], vacio: str, ancho: int = 95):
    """`columnas` son pares (encabezado, ancho); la última columna no se recorta."""
    def formatear(valores):
        partes = [f"{str(v)[:w]:<{w}}" for v, (_, w) in zip(valores[:-1], columnas[:-1])]
        return " ".join(partes + [str(valores[-1])])

    print(Fore.CYAN + formatear([c for c, _ in columnas]) + Style.RESET_ALL)
    _linea("-", Fore.CYAN, ancho)
    if not filas:
        print(Fore.YELLOW + vacio)
    for fila in filas:
        print(formatear(fila))
    _linea("-", Fore.CYAN, ancho)

def mostrar_tabla_usuarios(usuarios: List[Dict]):
    filas = [(u['nombre_completo'], u['username'], u['nombre_rol'], "Activo" if u['is_active'] else "Inactivo",
              u.get('ultima_sesion') or "Nunca") for u in usuarios]
    _imprimir_tabla([("NOMBRE", 28), ("USUARIO", 16), ("ROL", 24), ("ESTADO", 9), ("ÚLTIMA SESIÓN", 0)],
                    filas, "No hay otros usuarios registrados.")

def mostrar_tabla_equipos(equipos: List[Dict], numerar: bool = False):
    filas = []
    for i, e in enumerate(equipos, 1):
        estado = e['estado'] + (" (acta pendiente)" if e.get('acta_pendiente_id') else "")
        filas.append((f"{i}." if numerar else "", e['codigo_inventario'], e['numero_serie'], e['nombre'],
                      f"{e['marca']} {e['modelo']}", estado))
    _imprimir_tabla([("#", 3), ("CÓDIGO", 13), ("SERIE", 16), ("NOMBRE", 22), ("MARCA / MODELO", 24), ("ESTADO", 0)],
                    filas, "No hay equipos para mostrar.")

def mostrar_tabla_actas(actas: List[Dict]):
    filas = [(a['consecutivo'], a['fecha'][:10], a['estado'], a['entrega_nombre'], a['recibe_nombre'], len(a['items']))
             for a in actas]
    _imprimir_tabla([("N°", 6), ("FECHA", 11), ("ESTADO", 9), ("ENTREGA", 24), ("RECIBE", 24), ("EQUIPOS", 0)],
                    filas, "No hay actas internas para mostrar.", ancho=90)

def mostrar_detalle_acta(acta: Dict):
    titulo = "Borrador" if not acta.get('consecutivo') else f"Acta Interna N° {acta['consecutivo']}"
    mostrar_panel_info(titulo, {
        "Fecha": acta['fecha'], "Ciudad / Sede": f"{acta['ciudad']} / {acta['sede']}", "Área": acta['area'],
        "Entrega": acta['entrega_nombre'], "Recibe": f"{acta['recibe_nombre']} ({acta['cargo_recibe']})",
        "Estado": acta['estado'], "Observaciones": acta['observaciones'] or "Ninguna",
        "Firma entrega": "Registrada" if acta.get('firma_entrega') else "Pendiente",
        "Firma recibe": "Registrada" if acta.get('firma_recibe') else "Pendiente",
    })
    filas = [(i['codigo_inventario'], i['numero_serie'], i['nombre'], i['marca'], i['modelo']) for i in acta['items']]
    _imprimir_tabla([("CÓDIGO", 13), ("SERIE", 16), ("NOMBRE", 22), ("MARCA", 14), ("MODELO", 0)],
                    filas, "El acta no tiene equipos.", ancho=85)

def mostrar_log_sistema(logs: List[Dict]):
    filas = [(log['fecha'], log['usuario'], log['accion'],
              log['detalles'] if len(log['detalles']) <= 40 else log['detalles'][:37] + "...") for log in logs]
    _imprimir_tabla([("FECHA", 21), ("USUARIO", 16), ("ACCIÓN", 26), ("DETALLES", 0)],
                    filas, "No hay registros de actividad en el sistema.", ancho=90)
