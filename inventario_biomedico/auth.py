# inventario_biomedico/auth.py
import bcrypt, re, time
from datetime import datetime
from functools import wraps
from typing import Callable, Optional, Tuple
from colorama import Fore, Style
from . import ui
from .config import ROLES_PERMISOS
from .database import DatabaseManager
from .errores import ErrorAutorizacion

MAX_INTENTOS_LOGIN = 3

def hash_contrasena(contrasena: str) -> str:
    return bcrypt.hashpw(contrasena.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

def verificar_contrasena(contrasena: str, hash_almacenado: str) -> bool:
    try:
        return bcrypt.checkpw(contrasena.encode('utf-8'), hash_almacenado.encode('utf-8'))
    except ValueError:
        return False

def validar_contrasena(contrasena: str) -> bool:
    """Mínimo 8 caracteres con al menos una letra y un número."""
    return len(contrasena) >= 8 and bool(re.search(r'[A-Za-z]', contrasena)) and bool(re.search(r'[0-9]', contrasena))

def generar_contrasena_temporal() -> str:
    return f"biomedica{datetime.now().strftime('%d%m')}+"

def validar_email(email: str) -> bool:
    return re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', email) is not None

def validar_nombre_completo(nombre: str) -> bool:
    """Al menos nombre y apellido; solo letras (con tildes) y espacios."""
    return bool(re.match(r'^[a-zA-ZáéíóúÁÉÍÓÚñÑ\s]+$', nombre)) and len(nombre.split()) >= 2

def tiene_permiso(usuario: dict, permiso: str) -> bool:
    if not usuario or not usuario.get('is_active'):
        return False
    return permiso in ROLES_PERMISOS.get(usuario.get('nombre_rol'), set())

# --- CONTROL DE ACCESO BASADO EN ROLES (RBAC) ---
def requiere_permiso(permiso: str) -> Callable:
    """
    Protege una operación de servicio con firma (db, usuario_logueado, ...).
    Lanza ErrorAutorizacion si el usuario no está activo o su rol no tiene el permiso.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(db, usuario_logueado, *args, **kwargs):
            if not usuario_logueado:
                raise ErrorAutorizacion("Acceso denegado. No hay usuario logueado.")
            if not usuario_logueado.get('is_active'):
                raise ErrorAutorizacion("Acceso denegado. Su cuenta está bloqueada.")
            rol_usuario = usuario_logueado.get('nombre_rol')
            if permiso not in ROLES_PERMISOS.get(rol_usuario, set()):
                raise ErrorAutorizacion(f"Permiso denegado. Su rol '{rol_usuario}' no tiene el permiso '{permiso}'.")
            return func(db, usuario_logueado, *args, **kwargs)
        return wrapper
    return decorator

# --- INICIO DE SESIÓN ---

def autenticar(db: DatabaseManager, username: str, contrasena: str) -> Tuple[Optional[dict], str]:
    """Devuelve (usuario, "") si las credenciales son válidas, o (None, motivo)."""
    usuario = db.get_user_by_username(username.strip().lower())
    if not usuario or not verificar_contrasena(contrasena, usuario['password_hash']):
        return None, "❌ Credenciales incorrectas."
    if not usuario['is_active']:
        return None, "❌ Su cuenta está bloqueada."
    db.log_login_attempt(usuario['id'])
    return usuario, ""

def _mostrar_pantalla_login(admin_creado: bool, admin_pass: str, error: str):
    ui.mostrar_encabezado("Inicio de Sesión")
    print("Bienvenido al Inventario de Equipos Biomédicos.")
    if admin_creado:
        print(Fore.GREEN + "\n✨ Primera ejecución. Usuario administrador creado:")
        print(f"   Usuario: {Style.BRIGHT}admin{Style.RESET_ALL}   Contraseña temporal: {Style.BRIGHT}{admin_pass}{Style.RESET_ALL}")
    print(Fore.WHITE + "─" * 80)
    if error:
        print(Fore.RED + f"\n{error}\n")

def login(db: DatabaseManager, admin_creado: bool, admin_pass: str) -> Optional[dict]:
    """Pide credenciales hasta MAX_INTENTOS_LOGIN fallos. Exige cambio de clave si está pendiente."""
    error, username, fallidos = "", "", 0
    while fallidos < MAX_INTENTOS_LOGIN:
        _mostrar_pantalla_login(admin_creado, admin_pass, error)
        username = ui.solicitar_input(Fore.YELLOW + "👤 Usuario: ", default=username)
        contrasena = ui.solicitar_contrasena_con_asteriscos(Fore.YELLOW + "🔑 Contraseña: ") if username else ""
        if not contrasena:
            error = ""
            continue

        print(Fore.CYAN + "\nValidando credenciales...", end="", flush=True); time.sleep(1)
        print("\r" + " " * 30 + "\r", end="", flush=True)
        usuario, error = autenticar(db, username, contrasena)
        if not usuario:
            fallidos += 1
            continue
        if usuario['cambio_clave_requerido']:
            ui.mostrar_encabezado("Cambio de Contraseña Requerido", usuario_logueado=usuario)
            print(Fore.YELLOW + "⚠️ Debe reemplazar la contraseña temporal antes de continuar."); ui.pausar_pantalla()
            if not cambiar_contrasena_usuario(db, usuario, forzar_cambio=True):
                error = "No se pudo cambiar la contraseña. Intente de nuevo."
                continue
        return db.get_user_by_id(usuario['id'])
    print(Fore.RED + "\n❌ Demasiados intentos fallidos.")
    return None

def _leer_nueva_contrasena() -> str:
    while True:
        nueva = ui.solicitar_contrasena_con_asteriscos(Fore.YELLOW + "Nueva contraseña: ")
        if not validar_contrasena(nueva):
            print(Fore.RED + "Debe tener al menos 8 caracteres, con letras y números."); continue
        if ui.solicitar_contrasena_con_asteriscos(Fore.YELLOW + "Repita la nueva contraseña: ") != nueva:
            print(Fore.RED + "Las contraseñas no coinciden."); continue
        return nueva

def cambiar_contrasena_usuario(db: DatabaseManager, usuario: dict, forzar_cambio: bool = False) -> bool:
    ui.mostrar_encabezado(f"Cambiar Contraseña de {usuario['username']}", usuario_logueado=usuario)
    try:
        if not forzar_cambio:
            actual = ui.solicitar_contrasena_con_asteriscos(Fore.YELLOW + "Contraseña actual: ")
            if not verificar_contrasena(actual, usuario['password_hash']):
                print(Fore.RED + "Contraseña actual incorrecta."); ui.pausar_pantalla(); return False
        db.update_user_password(usuario['id'], hash_contrasena(_leer_nueva_contrasena()), require_change=False)
        db.registrar_movimiento_sistema("Cambio de Contraseña", "Contraseña actualizada por el propio usuario", usuario['username'])
        print(Fore.GREEN + "\n✅ Contraseña actualizada."); ui.pausar_pantalla()
        return True
    except KeyboardInterrupt:
        print(Fore.CYAN + "\n\n🚫 Operación cancelada."); ui.pausar_pantalla()
        return False
