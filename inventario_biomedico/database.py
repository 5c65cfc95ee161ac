# inventario_biomedico/database.py
import hashlib
import sqlite3
from contextlib import contextmanager
from typing import List, Dict, Optional, Set, Tuple
from datetime import datetime
from colorama import Fore, Style
from .config import (FORMATO_FECHA, ESTADO_DISPONIBLE, ACTA_ENVIADA, ACTA_ACEPTADA,
                     ASIGNACION_ACTIVA, ASIGNACION_FINALIZADA)
from .errores import ErrorConflicto


def _ahora() -> str:
    return datetime.now().strftime(FORMATO_FECHA)


class DatabaseManager:
    """
    Gestiona todas las operaciones de la base de datos SQLite de forma centralizada.

    La conexión trabaja en modo autocommit: cada sentencia suelta se confirma sola y
    las operaciones que deben ser atómicas se agrupan con `transaccion()`.
    """
    def __init__(self, db_name: str, timeout: float = 5.0):
        self.db_name = db_name
        self.timeout = timeout
        self.conn = None
        self.connect()
        self.create_tables()

    def connect(self):
        """Conecta a la base de datos y configura el modo de fila."""
        try:
            self.conn = sqlite3.connect(self.db_name, timeout=self.timeout, isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.Error as e:
            print(Fore.RED + f"❌ Error al conectar a la base de datos: {e}" + Style.RESET_ALL)
            raise SystemExit(1)

    def close(self):
        """Cierra la conexión a la base de datos."""
        if self.conn: self.conn.close()

    def execute_query(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Ejecuta una consulta SQL."""
        cursor = self.conn.cursor()
        cursor.execute(query, params)
        return cursor

    @property
    def en_transaccion(self) -> bool:
        return self.conn.in_transaction

    @contextmanager
    def transaccion(self):
        """
        Abre una transacción de escritura (BEGIN IMMEDIATE).
        Confirma al salir sin errores; ante cualquier excepción deshace todo.
        Si otro escritor mantiene el bloqueo más allá del timeout se lanza ErrorConflicto.
        """
        if self.conn.in_transaction:
            raise RuntimeError("Ya existe una transacción abierta en esta conexión.")
        try:
            self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.OperationalError as e:
            if "locked" in str(e) or "busy" in str(e):
                raise ErrorConflicto("La base de datos está ocupada por otra operación. Intente de nuevo.")
            raise
        try:
            yield self
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        else:
            self.conn.execute("COMMIT")

    def create_tables(self):
        """Crea las tablas de la base de datos si no existen."""
        cursor = self.conn.cursor()

        # --- Tablas de Acceso y Logs ---
        cursor.execute('CREATE TABLE IF NOT EXISTS roles (id INTEGER PRIMARY KEY, nombre_rol TEXT UNIQUE NOT NULL)')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY, nombre_completo TEXT NOT NULL, email TEXT UNIQUE NOT NULL,
                username TEXT UNIQUE NOT NULL, password_hash TEXT NOT NULL, fecha_registro TEXT NOT NULL,
                cambio_clave_requerido INTEGER DEFAULT 1, is_active INTEGER DEFAULT 1
            )''')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS user_roles (
                user_id INTEGER, role_id INTEGER, PRIMARY KEY (user_id, role_id),
                FOREIGN KEY (user_id) REFERENCES users (id), FOREIGN KEY (role_id) REFERENCES roles (id)
            )''')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS login_logs (
                id INTEGER PRIMARY KEY, user_id INTEGER, timestamp TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users (id)
            )''')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS log_sistema (
                id INTEGER PRIMARY KEY AUTOINCREMENT, accion TEXT NOT NULL,
                detalles TEXT NOT NULL, usuario TEXT NOT NULL, fecha TEXT NOT NULL
            )''')

        # --- Equipos Biomédicos ---
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS equipos (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                codigo_inventario TEXT UNIQUE NOT NULL,
                numero_serie TEXT NOT NULL,
                nombre TEXT NOT NULL,
                marca TEXT NOT NULL,
                modelo TEXT NOT NULL,
                estado TEXT NOT NULL DEFAULT 'Disponible',
                observaciones TEXT,
                custodio_id INTEGER,
                acta_pendiente_id INTEGER,
                acta_pendiente_recibe_id INTEGER,
                disponible_para_entrega INTEGER NOT NULL DEFAULT 0,
                asignado_activo INTEGER NOT NULL DEFAULT 0,
                fecha_registro TEXT NOT NULL,
                fecha_actualizacion TEXT,
                usuario_registro_id INTEGER,
                FOREIGN KEY(custodio_id) REFERENCES users(id),
                FOREIGN KEY(acta_pendiente_id) REFERENCES actas_internas(id),
                FOREIGN KEY(acta_pendiente_recibe_id) REFERENCES users(id),
                FOREIGN KEY(usuario_registro_id) REFERENCES users(id)
            )''')

        # --- Pacientes y Asignaciones (colaborador externo del flujo de actas) ---
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS pacientes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                nombre_completo TEXT NOT NULL,
                numero_documento TEXT UNIQUE NOT NULL,
                tiene_asignacion_activa INTEGER NOT NULL DEFAULT 0,
                fecha_registro TEXT NOT NULL
            )''')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS asignaciones (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                paciente_id INTEGER NOT NULL,
                equipo_id INTEGER NOT NULL,
                estado TEXT NOT NULL,
                fecha_asignacion TEXT NOT NULL,
                fecha_devolucion TEXT,
                usuario_asigna_id INTEGER,
                FOREIGN KEY(paciente_id) REFERENCES pacientes(id),
                FOREIGN KEY(equipo_id) REFERENCES equipos(id)
            )''')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_asignaciones_equipo ON asignaciones (equipo_id, estado)')

        # --- Actas Internas ---
        cursor.execute('CREATE TABLE IF NOT EXISTS consecutivos (serie TEXT PRIMARY KEY, valor INTEGER NOT NULL)')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS actas_internas (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                consecutivo INTEGER UNIQUE NOT NULL,
                fecha TEXT NOT NULL,
                ciudad TEXT NOT NULL DEFAULT '',
                sede TEXT NOT NULL DEFAULT '',
                area TEXT NOT NULL,
                cargo_recibe TEXT NOT NULL,
                observaciones TEXT NOT NULL DEFAULT '',
                entrega_id INTEGER NOT NULL,
                entrega_nombre TEXT NOT NULL,
                recibe_id INTEGER NOT NULL,
                recibe_nombre TEXT NOT NULL,
                recibe_email TEXT,
                estado TEXT NOT NULL,
                fecha_creacion TEXT NOT NULL,
                fecha_aceptacion TEXT,
                FOREIGN KEY(entrega_id) REFERENCES users(id),
                FOREIGN KEY(recibe_id) REFERENCES users(id)
            )''')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS actas_internas_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                acta_id INTEGER NOT NULL,
                orden INTEGER NOT NULL,
                equipo_id INTEGER NOT NULL,
                codigo_inventario TEXT NOT NULL,
                numero_serie TEXT NOT NULL,
                nombre TEXT NOT NULL,
                marca TEXT NOT NULL,
                modelo TEXT NOT NULL,
                estado_equipo TEXT,
                UNIQUE(acta_id, equipo_id),
                FOREIGN KEY(acta_id) REFERENCES actas_internas(id)
            )''')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS firmas_actas (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                acta_id INTEGER NOT NULL,
                tipo TEXT NOT NULL,
                contenido BLOB NOT NULL,
                huella TEXT NOT NULL,
                usuario_id INTEGER NOT NULL,
                fecha TEXT NOT NULL,
                UNIQUE(acta_id, tipo),
                FOREIGN KEY(acta_id) REFERENCES actas_internas(id)
            )''')

        self.inicializar_roles()

    def inicializar_roles(self):
        from .config import ROLES
        for rol in ROLES:
            self.execute_query("INSERT OR IGNORE INTO roles (nombre_rol) VALUES (?)", (rol,))

    def inicializar_admin_si_no_existe(self) -> Tuple[bool, Optional[str]]:
        from .auth import hash_contrasena, generar_contrasena_temporal
        if self.execute_query("SELECT COUNT(id) as count FROM users").fetchone()['count'] == 0:
            admin_pass = generar_contrasena_temporal()
            user_data = {
                'nombre_completo': "Administrador Principal", 'email': "admin@local.host", 'username': "admin",
                'password_hash': hash_contrasena(admin_pass), 'fecha_registro': _ahora()
            }
            self.add_new_user(user_data, "Administrador")
            return True, admin_pass
        return False, None

    # --- Métodos de Gestión de Usuarios y Roles ---
    _SELECT_USUARIO = "SELECT u.*, r.nombre_rol FROM users u JOIN user_roles ur ON u.id = ur.user_id JOIN roles r ON ur.role_id = r.id"

    def get_user_by_username(self, username: str) -> Optional[Dict]:
        row = self.execute_query(self._SELECT_USUARIO + " WHERE u.username = ?", (username,)).fetchone()
        return dict(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[Dict]:
        row = self.execute_query(self._SELECT_USUARIO + " WHERE u.id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        row = self.execute_query(self._SELECT_USUARIO + " WHERE lower(u.email) = lower(?)", (email,)).fetchone()
        return dict(row) if row else None

    def get_role_id_by_name(self, role_name: str) -> Optional[int]:
        row = self.execute_query("SELECT id FROM roles WHERE nombre_rol = ?", (role_name,)).fetchone()
        return row['id'] if row else None

    def get_all_users_with_roles(self) -> List[Dict]:
        query = self._SELECT_USUARIO + " ORDER BY u.nombre_completo"
        return [dict(row) for row in self.execute_query(query).fetchall()]

    def get_users_by_role(self, role_name: str, solo_activos: bool = True) -> List[Dict]:
        query = self._SELECT_USUARIO + " WHERE r.nombre_rol = ?"
        if solo_activos:
            query += " AND u.is_active = 1"
        query += " ORDER BY u.nombre_completo"
        return [dict(row) for row in self.execute_query(query, (role_name,)).fetchall()]

    def check_if_email_exists(self, email: str) -> bool:
        return self.execute_query("SELECT id FROM users WHERE email = ?", (email,)).fetchone() is not None

    def add_new_user(self, user_data: dict, role_name: str) -> Optional[int]:
        """Registra un usuario con su rol. Devuelve el id o None si el email/usuario ya existe."""
        role_id = self.get_role_id_by_name(role_name)
        if role_id is None:
            return None
        try:
            with self.transaccion():
                cursor = self.execute_query('INSERT INTO users (nombre_completo, email, username, password_hash, fecha_registro) VALUES (?, ?, ?, ?, ?)',
                                            (user_data['nombre_completo'], user_data['email'], user_data['username'],
                                             user_data['password_hash'], user_data.get('fecha_registro') or _ahora()))
                user_id = cursor.lastrowid
                self.execute_query("INSERT INTO user_roles (user_id, role_id) VALUES (?, ?)", (user_id, role_id))
            return user_id
        except sqlite3.IntegrityError: return None

    def update_user_status(self, user_id: int, is_active: bool):
        self.execute_query("UPDATE users SET is_active = ? WHERE id = ?", (int(is_active), user_id))

    def update_user_fullname(self, user_id: int, new_name: str):
        self.execute_query("UPDATE users SET nombre_completo = ? WHERE id = ?", (new_name, user_id))

    def update_user_password(self, user_id: int, new_hash: str, require_change: bool):
        self.execute_query("UPDATE users SET password_hash = ?, cambio_clave_requerido = ? WHERE id = ?", (new_hash, int(require_change), user_id))

    def update_user_role(self, user_id: int, new_role_id: int):
        self.execute_query("UPDATE user_roles SET role_id = ? WHERE user_id = ?", (new_role_id, user_id))

    # --- Métodos de Logs ---
    def log_login_attempt(self, user_id: int):
        self.execute_query("INSERT INTO login_logs (user_id, timestamp) VALUES (?, ?)", (user_id, _ahora()))

    def get_last_login_for_user(self, user_id: int) -> Optional[str]:
        row = self.execute_query("SELECT timestamp FROM login_logs WHERE user_id = ? ORDER BY timestamp DESC LIMIT 1", (user_id,)).fetchone()
        return row['timestamp'] if row else None

    def registrar_movimiento_sistema(self, accion: str, detalles: str, usuario: str):
        self.execute_query("INSERT INTO log_sistema (accion, detalles, usuario, fecha) VALUES (?, ?, ?, ?)", (accion, detalles, usuario, _ahora()))

    def get_log_sistema_paginated(self, page: int, page_size: int) -> Tuple[List[Dict], int]:
        offset = (page - 1) * page_size
        total_rows = self.execute_query("SELECT COUNT(id) FROM log_sistema").fetchone()[0]
        total_pages = (total_rows + page_size - 1) // page_size if total_rows > 0 else 1
        logs = self.execute_query("SELECT * FROM log_sistema ORDER BY fecha DESC, id DESC LIMIT ? OFFSET ?", (page_size, offset)).fetchall()
        return [dict(row) for row in logs], total_pages

    def get_log_sistema_por_accion(self, accion: str) -> List[Dict]:
        rows = self.execute_query("SELECT * FROM log_sistema WHERE accion = ? ORDER BY id", (accion,)).fetchall()
        return [dict(row) for row in rows]

    # --- Métodos de Equipos (Registro) ---
    def insert_equipo(self, datos: dict, usuario_id: Optional[int]) -> Optional[int]:
        query = '''
            INSERT INTO equipos (
                codigo_inventario, numero_serie, nombre, marca, modelo, estado, observaciones,
                custodio_id, fecha_registro, usuario_registro_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        '''
        params = (
            datos['codigo_inventario'], datos['numero_serie'], datos['nombre'], datos['marca'], datos['modelo'],
            datos.get('estado') or ESTADO_DISPONIBLE, datos.get('observaciones') or '',
            datos.get('custodio_id'), _ahora(), usuario_id
        )
        try:
            return self.execute_query(query, params).lastrowid
        except sqlite3.IntegrityError: return None

    def get_equipo_by_id(self, equipo_id: int) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM equipos WHERE id = ?", (equipo_id,)).fetchone()
        return dict(row) if row else None

    def get_equipo_by_codigo(self, codigo: str) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM equipos WHERE codigo_inventario = ?", (codigo,)).fetchone()
        return dict(row) if row else None

    def get_all_equipos(self) -> List[Dict]:
        return [dict(row) for row in self.execute_query("SELECT * FROM equipos ORDER BY codigo_inventario").fetchall()]

    def update_equipo_descripcion(self, equipo_id: int, datos: dict) -> bool:
        """Corrige campos descriptivos. Nunca toca los ítems ya congelados en actas."""
        campos = [c for c in ('numero_serie', 'nombre', 'marca', 'modelo', 'observaciones') if c in datos]
        if not campos:
            return False
        asignaciones = ", ".join(f"{c} = ?" for c in campos)
        params = tuple(datos[c] for c in campos) + (_ahora(), equipo_id)
        cursor = self.execute_query(f"UPDATE equipos SET {asignaciones}, fecha_actualizacion = ? WHERE id = ?", params)
        return cursor.rowcount == 1

    def update_equipo_estado(self, equipo_id: int, nuevo_estado: str) -> bool:
        """Cambia el estado solo si el equipo no está en un acta pendiente ni asignado a un paciente."""
        cursor = self.execute_query('''
            UPDATE equipos SET estado = ?, fecha_actualizacion = ?
            WHERE id = ? AND acta_pendiente_id IS NULL AND estado != 'Asignado'
        ''', (nuevo_estado, _ahora(), equipo_id))
        return cursor.rowcount == 1

    # --- Métodos de Equipos (Custodia, solo desde el motor de actas) ---
    def reservar_equipo_para_acta(self, equipo_id: int, acta_id: int, entrega_id: int, recibe_id: int) -> bool:
        """Reclama el equipo para un acta. Falla (False) si otra acta ya lo reclamó."""
        cursor = self.execute_query('''
            UPDATE equipos SET acta_pendiente_id = ?, acta_pendiente_recibe_id = ?, custodio_id = ?,
                disponible_para_entrega = 0, fecha_actualizacion = ?
            WHERE id = ? AND acta_pendiente_id IS NULL
        ''', (acta_id, recibe_id, entrega_id, _ahora(), equipo_id))
        return cursor.rowcount == 1

    def liberar_equipo_de_acta(self, equipo_id: int, acta_id: int, custodio_id: int) -> bool:
        cursor = self.execute_query('''
            UPDATE equipos SET acta_pendiente_id = NULL, acta_pendiente_recibe_id = NULL, custodio_id = ?,
                disponible_para_entrega = 1, fecha_actualizacion = ?
            WHERE id = ? AND acta_pendiente_id = ?
        ''', (custodio_id, _ahora(), equipo_id, acta_id))
        return cursor.rowcount == 1

    def update_equipos_recibe_pendiente(self, acta_id: int, recibe_id: int):
        self.execute_query("UPDATE equipos SET acta_pendiente_recibe_id = ?, fecha_actualizacion = ? WHERE acta_pendiente_id = ?",
                           (recibe_id, _ahora(), acta_id))

    # --- Métodos de Pacientes y Asignaciones ---
    def insert_paciente(self, nombre_completo: str, numero_documento: str) -> Optional[int]:
        try:
            cursor = self.execute_query("INSERT INTO pacientes (nombre_completo, numero_documento, fecha_registro) VALUES (?, ?, ?)",
                                        (nombre_completo, numero_documento, _ahora()))
            return cursor.lastrowid
        except sqlite3.IntegrityError: return None

    def get_paciente_by_id(self, paciente_id: int) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM pacientes WHERE id = ?", (paciente_id,)).fetchone()
        return dict(row) if row else None

    def get_all_pacientes(self) -> List[Dict]:
        return [dict(row) for row in self.execute_query("SELECT * FROM pacientes ORDER BY nombre_completo").fetchall()]

    def insert_asignacion(self, paciente_id: int, equipo_id: int, usuario_id: int) -> int:
        cursor = self.execute_query('''
            INSERT INTO asignaciones (paciente_id, equipo_id, estado, fecha_asignacion, usuario_asigna_id)
            VALUES (?, ?, ?, ?, ?)
        ''', (paciente_id, equipo_id, ASIGNACION_ACTIVA, _ahora(), usuario_id))
        return cursor.lastrowid

    def get_asignacion_by_id(self, asignacion_id: int) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM asignaciones WHERE id = ?", (asignacion_id,)).fetchone()
        return dict(row) if row else None

    def get_asignacion_activa_por_equipo(self, equipo_id: int) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM asignaciones WHERE equipo_id = ? AND estado = ? LIMIT 1",
                                 (equipo_id, ASIGNACION_ACTIVA)).fetchone()
        return dict(row) if row else None

    def finalizar_asignacion(self, asignacion_id: int) -> bool:
        cursor = self.execute_query("UPDATE asignaciones SET estado = ?, fecha_devolucion = ? WHERE id = ? AND estado = ?",
                                    (ASIGNACION_FINALIZADA, _ahora(), asignacion_id, ASIGNACION_ACTIVA))
        return cursor.rowcount == 1

    def get_ids_equipos_con_asignacion_activa(self) -> Set[int]:
        rows = self.execute_query("SELECT DISTINCT equipo_id FROM asignaciones WHERE estado = ?", (ASIGNACION_ACTIVA,)).fetchall()
        return {row['equipo_id'] for row in rows}

    def get_ids_pacientes_con_asignacion_activa(self) -> Set[int]:
        rows = self.execute_query("SELECT DISTINCT paciente_id FROM asignaciones WHERE estado = ?", (ASIGNACION_ACTIVA,)).fetchall()
        return {row['paciente_id'] for row in rows}

    def set_equipo_asignado(self, equipo_id: int, estado: str, asignado_activo: bool):
        self.execute_query("UPDATE equipos SET estado = ?, asignado_activo = ?, fecha_actualizacion = ? WHERE id = ?",
                           (estado, int(asignado_activo), _ahora(), equipo_id))

    def set_paciente_asignacion_activa(self, paciente_id: int, activa: bool):
        self.execute_query("UPDATE pacientes SET tiene_asignacion_activa = ? WHERE id = ?", (int(activa), paciente_id))

    def recalcular_flags_asignacion(self) -> Dict[str, int]:
        """Sincroniza los flags derivados con las asignaciones activas. Solo escribe los que difieren."""
        activas = "SELECT {col} FROM asignaciones WHERE estado = ?"
        conteos = {}
        for tabla, flag, col, clave in (("pacientes", "tiene_asignacion_activa", "paciente_id", "pacientes_actualizados"),
                                        ("equipos", "asignado_activo", "equipo_id", "equipos_actualizados")):
            subconsulta = activas.format(col=col)
            marcados = self.execute_query(f"UPDATE {tabla} SET {flag} = 1 WHERE {flag} = 0 AND id IN ({subconsulta})",
                                          (ASIGNACION_ACTIVA,)).rowcount
            desmarcados = self.execute_query(f"UPDATE {tabla} SET {flag} = 0 WHERE {flag} = 1 AND id NOT IN ({subconsulta})",
                                             (ASIGNACION_ACTIVA,)).rowcount
            conteos[clave] = marcados + desmarcados
        return conteos

    # --- Métodos de Consecutivos ---
    def incrementar_consecutivo(self, serie: str) -> int:
        self.execute_query("INSERT OR IGNORE INTO consecutivos (serie, valor) VALUES (?, 0)", (serie,))
        self.execute_query("UPDATE consecutivos SET valor = valor + 1 WHERE serie = ?", (serie,))
        return self.execute_query("SELECT valor FROM consecutivos WHERE serie = ?", (serie,)).fetchone()['valor']

    def get_valor_consecutivo(self, serie: str) -> int:
        row = self.execute_query("SELECT valor FROM consecutivos WHERE serie = ?", (serie,)).fetchone()
        return row['valor'] if row else 0

    # --- Métodos de Actas Internas ---
    def insert_acta_interna(self, datos: dict) -> int:
        cursor = self.execute_query('''
            INSERT INTO actas_internas (
                consecutivo, fecha, ciudad, sede, area, cargo_recibe, observaciones,
                entrega_id, entrega_nombre, recibe_id, recibe_nombre, recibe_email, estado, fecha_creacion
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            datos['consecutivo'], datos['fecha'], datos['ciudad'], datos['sede'], datos['area'], datos['cargo_recibe'],
            datos['observaciones'], datos['entrega_id'], datos['entrega_nombre'], datos['recibe_id'],
            datos['recibe_nombre'], datos.get('recibe_email'), ACTA_ENVIADA, _ahora()
        ))
        return cursor.lastrowid

    def insert_items_acta(self, acta_id: int, items: List[Dict]):
        for orden, item in enumerate(items, 1):
            self.execute_query('''
                INSERT INTO actas_internas_items (
                    acta_id, orden, equipo_id, codigo_inventario, numero_serie, nombre, marca, modelo, estado_equipo
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (acta_id, orden, item['equipo_id'], item['codigo_inventario'], item['numero_serie'],
                  item['nombre'], item['marca'], item['modelo'], item.get('estado')))

    def insert_firma_acta(self, acta_id: int, tipo: str, contenido: bytes, usuario_id: int):
        self.execute_query('''
            INSERT INTO firmas_actas (acta_id, tipo, contenido, huella, usuario_id, fecha) VALUES (?, ?, ?, ?, ?, ?)
        ''', (acta_id, tipo, sqlite3.Binary(contenido), hashlib.sha256(contenido).hexdigest(), usuario_id, _ahora()))

    def get_firma_acta(self, acta_id: int, tipo: str) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM firmas_actas WHERE acta_id = ? AND tipo = ?", (acta_id, tipo)).fetchone()
        if not row:
            return None
        firma = dict(row)
        firma['contenido'] = bytes(firma['contenido'])
        return firma

    def get_items_acta(self, acta_id: int) -> List[Dict]:
        rows = self.execute_query("SELECT * FROM actas_internas_items WHERE acta_id = ? ORDER BY orden", (acta_id,)).fetchall()
        return [dict(row) for row in rows]

    def _completar_acta(self, row: sqlite3.Row) -> Dict:
        acta = dict(row)
        acta['items'] = self.get_items_acta(acta['id'])
        firma_entrega = self.get_firma_acta(acta['id'], 'entrega')
        firma_recibe = self.get_firma_acta(acta['id'], 'recibe')
        acta['firma_entrega'] = firma_entrega['contenido'] if firma_entrega else None
        acta['firma_recibe'] = firma_recibe['contenido'] if firma_recibe else None
        return acta

    def get_acta_interna_by_id(self, acta_id: int) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM actas_internas WHERE id = ?", (acta_id,)).fetchone()
        return self._completar_acta(row) if row else None

    def get_acta_interna_by_consecutivo(self, consecutivo: int) -> Optional[Dict]:
        row = self.execute_query("SELECT * FROM actas_internas WHERE consecutivo = ?", (consecutivo,)).fetchone()
        return self._completar_acta(row) if row else None

    def get_all_actas_internas(self) -> List[Dict]:
        rows = self.execute_query("SELECT * FROM actas_internas ORDER BY consecutivo DESC").fetchall()
        return [self._completar_acta(row) for row in rows]

    def count_actas_enviadas_por_equipo(self, equipo_id: int) -> int:
        row = self.execute_query('''
            SELECT COUNT(a.id) AS total FROM actas_internas a
            JOIN actas_internas_items i ON i.acta_id = a.id
            WHERE i.equipo_id = ? AND a.estado = ?
        ''', (equipo_id, ACTA_ENVIADA)).fetchone()
        return row['total']

    def count_actas_enviadas_para_receptor(self, user_id: int) -> int:
        row = self.execute_query("SELECT COUNT(id) AS total FROM actas_internas WHERE recibe_id = ? AND estado = ?",
                                 (user_id, ACTA_ENVIADA)).fetchone()
        return row['total']

    def marcar_acta_aceptada(self, acta_id: int) -> bool:
        cursor = self.execute_query("UPDATE actas_internas SET estado = ?, fecha_aceptacion = ? WHERE id = ? AND estado = ?",
                                    (ACTA_ACEPTADA, _ahora(), acta_id, ACTA_ENVIADA))
        return cursor.rowcount == 1

    def update_acta_receptor(self, acta_id: int, recibe_id: int, recibe_nombre: str, recibe_email: Optional[str]) -> bool:
        cursor = self.execute_query("UPDATE actas_internas SET recibe_id = ?, recibe_nombre = ?, recibe_email = ? WHERE id = ? AND estado = ?",
                                    (recibe_id, recibe_nombre, recibe_email, acta_id, ACTA_ENVIADA))
        return cursor.rowcount == 1
