# main.py
import os
from dotenv import load_dotenv
from colorama import Fore
from inventario_biomedico.database import DatabaseManager
from inventario_biomedico.auth import login
from inventario_biomedico.menus import mostrar_menu_principal
from inventario_biomedico.ui import mostrar_encabezado

def main():
    """
    Función principal que inicializa la base de datos y corre el bucle de la aplicación.
    """
    load_dotenv()
    ENVIRONMENT = os.getenv("ENVIRONMENT", "production")

    DB_PATH = os.getenv("DB_PATH", "inventario_biomedico/data")
    DB_NAME = os.getenv("DB_NAME", "inventario_biomedico.db")
    DB_TIMEOUT = float(os.getenv("DB_TIMEOUT", "5"))

    if not os.path.exists(DB_PATH):
        os.makedirs(DB_PATH)
        print(Fore.CYAN + f"Directorio '{DB_PATH}' creado.")

    db = DatabaseManager(os.path.join(DB_PATH, DB_NAME), timeout=DB_TIMEOUT)
    admin_creado, admin_pass = db.inicializar_admin_si_no_existe()

    while True:
        if ENVIRONMENT == 'development':
            usuario_logueado = db.get_user_by_username("admin")
        else:
            usuario_logueado = login(db, admin_creado, admin_pass)
            admin_creado = False

        if usuario_logueado:
            mostrar_menu_principal(db, usuario_logueado)
            if ENVIRONMENT == 'development':
                usuario_logueado = None
        if not usuario_logueado:
            mostrar_encabezado("Fin del Programa")
            print(Fore.GREEN + "\n¡Gracias por usar el Inventario de Equipos Biomédicos!")
            db.close()
            print(Fore.GREEN + "Conexión a la base de datos cerrada.")
            break

if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print(Fore.RED + "\n\nPrograma interrumpido por el usuario.")
