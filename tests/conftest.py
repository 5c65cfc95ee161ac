"""
Fixtures compartidos: una base SQLite en archivo temporal con un usuario por rol.
"""
import pytest

from inventario_biomedico.config import (ROL_ADMINISTRADOR, ROL_GERENCIA, ROL_INGENIERO, ROL_AUXILIAR,
                                         ROL_VISITADOR)
from inventario_biomedico.database import DatabaseManager

# Los tests no validan contraseñas; un hash fijo evita el costo de bcrypt.
HASH_FICTICIO = "$2b$12$abcdefghijklmnopqrstuuABCDEFGHIJKLMNOPQRSTUVWXYZ01234"

FIRMA_PNG = b"\x89PNG\r\n\x1a\nfirma"


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "inventario_test.db")


@pytest.fixture
def db(db_path):
    manager = DatabaseManager(db_path)
    yield manager
    manager.close()


def _crear_usuario(db, username, nombre, rol):
    user_id = db.add_new_user({
        'nombre_completo': nombre,
        'email': f"{username}@hospital.test",
        'username': username,
        'password_hash': HASH_FICTICIO,
    }, rol)
    assert user_id is not None
    return db.get_user_by_id(user_id)


@pytest.fixture
def usuarios(db):
    """Un usuario activo por rol, más un segundo ingeniero y una segunda auxiliar."""
    return {
        'admin': _crear_usuario(db, "admin", "Administrador Principal", ROL_ADMINISTRADOR),
        'gerencia': _crear_usuario(db, "gerente", "Gloria Gerente", ROL_GERENCIA),
        'ingeniero': _crear_usuario(db, "ingeniero", "Iván Ingeniero", ROL_INGENIERO),
        'ingeniero2': _crear_usuario(db, "ingeniero2", "Inés Ingeniera", ROL_INGENIERO),
        'auxiliar': _crear_usuario(db, "auxiliar", "Ana Auxiliar", ROL_AUXILIAR),
        'auxiliar2': _crear_usuario(db, "auxiliar2", "Alba Auxiliar", ROL_AUXILIAR),
        'visitador': _crear_usuario(db, "visitador", "Víctor Visitador", ROL_VISITADOR),
    }


@pytest.fixture
def crear_equipo(db):
    """Fábrica de equipos. Devuelve el equipo recién leído de la base."""
    contador = {'n': 0}

    def _crear(custodio=None, estado="Disponible", codigo=None, **extra):
        contador['n'] += 1
        datos = {
            'codigo_inventario': codigo or f"MBG-{contador['n']:03d}",
            'numero_serie': f"SN{contador['n']:05d}",
            'nombre': extra.get('nombre', "Monitor De Signos Vitales"),
            'marca': extra.get('marca', "Mindray"),
            'modelo': extra.get('modelo', f"VS-{contador['n']}"),
            'estado': estado,
            'custodio_id': custodio['id'] if custodio else None,
        }
        equipo_id = db.insert_equipo(datos, custodio['id'] if custodio else None)
        assert equipo_id is not None
        return db.get_equipo_by_id(equipo_id)

    return _crear


@pytest.fixture
def datos_acta(usuarios):
    """Construye el payload de creación con valores válidos por defecto."""
    def _datos(equipos, **cambios):
        datos = {
            'recibe_id': usuarios['auxiliar']['id'],
            'ciudad': "Bogotá",
            'sede': "Sede Norte",
            'cargo_recibe': "Auxiliar Administrativa",
            'observaciones': "",
            'fecha': "2026-10-17",
            'equipo_ids': [e['id'] for e in equipos],
            'firma_entrega': FIRMA_PNG,
        }
        datos.update(cambios)
        return datos

    return _datos
