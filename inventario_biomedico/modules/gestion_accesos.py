# inventario_biomedico/modules/gestion_accesos.py
from datetime import datetime
from typing import Callable, Optional
from colorama import Fore, Style
from .. import ui
from ..auth import generar_contrasena_temporal, hash_contrasena, validar_email, validar_nombre_completo
from ..config import ROLES, ROL_ADMINISTRADOR, ROL_AUXILIAR, FORMATO_FECHA
from ..database import DatabaseManager

ROLES_ASIGNABLES = [r for r in ROLES if r != ROL_ADMINISTRADOR]

# --- FUNCIONES AUXILIARES ---

def _capitalizar_nombre(nombre: str) -> str:
    return ' '.join(parte.capitalize() for parte in nombre.split())

def _confirmar(esperado: str, descripcion: str) -> bool:
    """Pide escribir de nuevo un valor para confirmar una acción sobre un usuario."""
    respuesta = ui.solicitar_input(Fore.CYAN + f"Para confirmar, escriba {descripcion} ({esperado}): ")
    if respuesta.strip().lower() == esperado.lower():
        return True
    print(Fore.RED + "\nLa confirmación no coincide. Operación cancelada.")
    return False

def _elegir_rol(roles: list) -> Optional[str]:
    for i, rol in enumerate(roles, 1):
        print(f"  {i}. {rol}")
    opcion = ui.solicitar_input(Fore.YELLOW + "Seleccione el rol: ")
    if opcion.isdigit() and 1 <= int(opcion) <= len(roles):
        return roles[int(opcion) - 1]
    return None

def _advertir_actas_pendientes(db: DatabaseManager, usuario: dict) -> None:
    """Una auxiliar con actas Enviadas deja equipos reservados si pierde el acceso."""
    if usuario['nombre_rol'] != ROL_AUXILIAR:
        return
    pendientes = db.count_actas_enviadas_para_receptor(usuario['id'])
    if pendientes:
        print(Fore.YELLOW + f"⚠️ {usuario['nombre_completo']} tiene {pendientes} acta(s) interna(s) sin aceptar.")
        print(Fore.YELLOW + "   Reasígnelas desde Actas Internas para que los equipos no queden bloqueados.")

def _validar_campo_usuario(db: DatabaseManager, campo: str, valor: str, datos: dict) -> Optional[str]:
    """Devuelve el valor normalizado o None después de mostrar el error."""
    if campo == "Nombre completo":
        if validar_nombre_completo(valor):
            return _capitalizar_nombre(valor)
        print(Fore.RED + "Escriba nombre y apellido, sin números ni símbolos.")
    elif campo == "Correo electrónico":
        email = valor.lower()
        if not validar_email(email):
            print(Fore.RED + "El formato del correo no es válido.")
        elif db.check_if_email_exists(email):
            print(Fore.RED + "Este correo ya está registrado.")
        else:
            return email
    elif campo == "Confirmar correo":
        if valor.lower() == datos["Correo electrónico"]:
            return valor.lower()
        print(Fore.RED + "Los correos no coinciden.")
    elif campo == "Rol":
        if valor.isdigit() and 1 <= int(valor) <= len(ROLES_ASIGNABLES):
            return ROLES_ASIGNABLES[int(valor) - 1]
        print(Fore.RED + "Selección de rol no válida.")
    ui.pausar_pantalla()
    return None

# --- REGISTRO ---

def registrar_nuevo_usuario(db: DatabaseManager, admin_user: dict):
    """Alta de usuario con contraseña temporal; el nombre de acceso sale del correo."""
    campos = ["Nombre completo", "Correo electrónico", "Confirmar correo", "Rol"]
    datos = {campo: "" for campo in campos}
    indice = 0
    try:
        while indice < len(campos):
            campo = campos[indice]
            ui.mostrar_formulario_interactivo("Registrar Nuevo Usuario", campos, datos, indice, admin_user)
            if campo == "Rol":
                for i, rol in enumerate(ROLES_ASIGNABLES, 1):
                    print(f"  {i}. {rol}")
            valor = ui.solicitar_input(Fore.YELLOW + f"{campo}: ")
            if not valor:
                print(Fore.RED + "Este campo no puede estar vacío."); ui.pausar_pantalla(); continue
            normalizado = _validar_campo_usuario(db, campo, valor, datos)
            if normalizado is not None:
                datos[campo] = normalizado
                indice += 1

        username = datos["Correo electrónico"].split('@')[0]
        temporal = generar_contrasena_temporal()
        ui.mostrar_encabezado("Confirmar Registro", usuario_logueado=admin_user)
        ui.mostrar_panel_info("Nuevo Usuario", {
            "Nombre": datos["Nombre completo"], "Correo": datos["Correo electrónico"], "Rol": datos["Rol"],
            "Usuario": f"{Fore.YELLOW}{username}{Style.RESET_ALL}",
            "Contraseña temporal": f"{Fore.GREEN}{temporal}{Style.RESET_ALL}",
        })
        if not _confirmar(datos["Correo electrónico"], "el correo del nuevo usuario"):
            return

        nuevo_id = db.add_new_user({
            "nombre_completo": datos["Nombre completo"], "email": datos["Correo electrónico"], "username": username,
            "password_hash": hash_contrasena(temporal), "fecha_registro": datetime.now().strftime(FORMATO_FECHA),
        }, datos["Rol"])
        if nuevo_id is None:
            print(Fore.RED + "\n❌ El usuario o el correo ya existen."); return
        db.registrar_movimiento_sistema("Creación de Usuario", f"Usuario '{username}' con rol '{datos['Rol']}'",
                                        admin_user['username'])
        print(Fore.GREEN + "\n✅ Usuario registrado. Deberá cambiar la contraseña en su primer ingreso.")
    except KeyboardInterrupt:
        print(Fore.CYAN + "\n\n🚫 Operación cancelada.")
    finally:
        ui.pausar_pantalla()

# --- ADMINISTRACIÓN ---

def gestionar_usuarios_existentes(db: DatabaseManager, admin_user: dict):
    while True:
        ui.mostrar_encabezado("Gestión de Usuarios", usuario_logueado=admin_user)
        otros = [dict(u, ultima_sesion=db.get_last_login_for_user(u['id']) or "No ha iniciado sesión")
                 for u in db.get_all_users_with_roles() if u['id'] != admin_user['id']]
        ui.mostrar_tabla_usuarios(otros)

        username = ui.solicitar_input(Fore.YELLOW + "\nUsuario a gestionar (o 'q' para volver): ").lower()
        if username == 'q':
            break
        seleccionado = next((u for u in otros if u['username'] == username), None)
        if not seleccionado:
            print(Fore.RED + "Usuario no encontrado."); ui.pausar_pantalla(); continue
        _menu_usuario(db, admin_user, seleccionado['id'])

def _menu_usuario(db: DatabaseManager, admin_user: dict, user_id: int):
    acciones = {
        '1': _modificar_nombre_usuario,
        '2': _cambiar_rol_usuario,
        '3': _cambiar_estado_usuario,
        '4': _resetear_contrasena_usuario,
    }
    while True:
        usuario = db.get_user_by_id(user_id)
        ui.mostrar_encabezado(f"Usuario: {usuario['username']}", usuario_logueado=admin_user)
        estado = (Fore.GREEN + "Activo") if usuario['is_active'] else (Fore.RED + "Inactivo")
        ui.mostrar_panel_info("Datos", {
            "Nombre": usuario['nombre_completo'], "Correo": usuario['email'], "Rol": usuario['nombre_rol'],
            "Registro": usuario['fecha_registro'], "Estado": f"{estado}{Style.RESET_ALL}",
            "Actas por aceptar": db.count_actas_enviadas_para_receptor(user_id),
        })
        ui.mostrar_menu(["Modificar nombre", "Cambiar rol",
                         "Desactivar usuario" if usuario['is_active'] else "Activar usuario",
                         "Resetear contraseña", "Volver"])
        opcion = ui.solicitar_input(Fore.YELLOW + "Seleccione una acción: ")
        if opcion == '5':
            break
        accion: Optional[Callable] = acciones.get(opcion)
        if accion:
            accion(db, admin_user, usuario)
        else:
            print(Fore.RED + "Opción no válida.")
        ui.pausar_pantalla()

def _modificar_nombre_usuario(db: DatabaseManager, admin_user: dict, usuario: dict):
    nuevo = ui.solicitar_input(Fore.YELLOW + f"Nuevo nombre para {usuario['nombre_completo']}: ")
    if not validar_nombre_completo(nuevo):
        print(Fore.RED + "\nEscriba nombre y apellido, sin números ni símbolos."); return
    nuevo = _capitalizar_nombre(nuevo)
    db.update_user_fullname(usuario['id'], nuevo)
    db.registrar_movimiento_sistema("Modificación de Usuario", f"'{usuario['username']}' ahora se llama '{nuevo}'",
                                    admin_user['username'])
    # Las actas guardan el nombre vigente al momento de emitirse.
    print(Fore.GREEN + "\n✅ Nombre actualizado. Las actas ya emitidas conservan el nombre anterior.")

def _cambiar_estado_usuario(db: DatabaseManager, admin_user: dict, usuario: dict):
    activar = not usuario['is_active']
    if not activar:
        _advertir_actas_pendientes(db, usuario)
    if not _confirmar(usuario['username'], "el nombre de usuario"):
        return
    db.update_user_status(usuario['id'], activar)
    resultado = "activado" if activar else "desactivado"
    db.registrar_movimiento_sistema("Cambio de Estado", f"Usuario '{usuario['username']}' {resultado}", admin_user['username'])
    print(Fore.GREEN + f"\n✅ Usuario {resultado}.")

def _resetear_contrasena_usuario(db: DatabaseManager, admin_user: dict, usuario: dict):
    if not _confirmar(usuario['username'], "el nombre de usuario"):
        return
    temporal = generar_contrasena_temporal()
    db.update_user_password(usuario['id'], hash_contrasena(temporal), require_change=True)
    db.registrar_movimiento_sistema("Reseteo de Contraseña", f"Contraseña de '{usuario['username']}' reseteada",
                                    admin_user['username'])
    print(Fore.GREEN + f"\n✅ Nueva contraseña temporal: {Style.BRIGHT}{temporal}{Style.RESET_ALL}")

def _cambiar_rol_usuario(db: DatabaseManager, admin_user: dict, usuario: dict):
    _advertir_actas_pendientes(db, usuario)
    print(Fore.CYAN + f"Rol actual: {usuario['nombre_rol']}")
    nuevo_rol = _elegir_rol([r for r in ROLES_ASIGNABLES if r != usuario['nombre_rol']])
    if not nuevo_rol:
        print(Fore.RED + "Selección no válida."); return
    if not _confirmar(nuevo_rol, "el nombre del rol"):
        return
    db.update_user_role(usuario['id'], db.get_role_id_by_name(nuevo_rol))
    db.registrar_movimiento_sistema("Cambio de Rol", f"'{usuario['username']}': {usuario['nombre_rol']} -> {nuevo_rol}",
                                    admin_user['username'])
    print(Fore.GREEN + f"\n✅ Rol actualizado a '{nuevo_rol}'.")
