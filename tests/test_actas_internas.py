import threading
from datetime import date, datetime

import pytest

from inventario_biomedico.actas_internas import (
    crear_acta_interna,
    aceptar_acta_interna,
    reasignar_receptor_acta,
    listar_receptores_elegibles,
    listar_equipos_elegibles,
    listar_actas_visibles,
    obtener_acta_interna,
)
from inventario_biomedico.config import (ACTA_ENVIADA, ACTA_ACEPTADA, AREA_POR_DEFECTO, SERIE_ACTA_INTERNA,
                                         ESTADO_MANTENIMIENTO)
from inventario_biomedico.database import DatabaseManager
from inventario_biomedico.errores import (ErrorValidacion, ErrorElegibilidad, ErrorConflicto, ErrorAutorizacion,
                                          ErrorNoEncontrado)

from conftest import FIRMA_PNG

FIRMA_RECIBE = b"\x89PNG\r\n\x1a\nrecibe"


def _total_actas(db):
    return db.execute_query("SELECT COUNT(id) FROM actas_internas").fetchone()[0]


# --- Creación ---

def test_crear_acta_asigna_consecutivo_y_reserva_equipos(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    e1, e2 = crear_equipo(ingeniero), crear_equipo(ingeniero)

    resultado = crear_acta_interna(db, ingeniero, datos_acta([e1, e2]))

    assert resultado['consecutivo'] == 1
    acta = db.get_acta_interna_by_id(resultado['id'])
    assert acta['estado'] == ACTA_ENVIADA
    assert acta['entrega_id'] == ingeniero['id']
    assert acta['recibe_id'] == usuarios['auxiliar']['id']
    assert acta['recibe_nombre'] == "Ana Auxiliar"
    assert acta['firma_entrega'] == FIRMA_PNG
    assert acta['firma_recibe'] is None
    assert [i['equipo_id'] for i in acta['items']] == [e1['id'], e2['id']]
    for equipo in (e1, e2):
        actual = db.get_equipo_by_id(equipo['id'])
        assert actual['acta_pendiente_id'] == resultado['id']
        assert actual['acta_pendiente_recibe_id'] == usuarios['auxiliar']['id']
        assert actual['custodio_id'] == ingeniero['id']
        assert actual['disponible_para_entrega'] == 0
    assert len(db.get_log_sistema_por_accion("Creación Acta Interna")) == 1


def test_consecutivos_estrictamente_crecientes(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    numeros = [crear_acta_interna(db, ingeniero, datos_acta([crear_equipo(ingeniero)]))['consecutivo']
               for _ in range(3)]
    assert numeros == [1, 2, 3]
    assert db.get_valor_consecutivo(SERIE_ACTA_INTERNA) == 3
    assert db.get_acta_interna_by_consecutivo(2) is not None


def test_crear_sin_equipos_falla_sin_efectos(db, usuarios, datos_acta):
    with pytest.raises(ErrorValidacion) as exc:
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([]))
    assert exc.value.codigo == "empty-selection"
    assert _total_actas(db) == 0
    assert db.get_valor_consecutivo(SERIE_ACTA_INTERNA) == 0


def test_crear_sin_firma_no_modifica_nada(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    with pytest.raises(ErrorValidacion) as exc:
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo], firma_entrega=None))
    assert exc.value.codigo == "missing-signature"
    assert db.get_equipo_by_id(equipo['id']) == equipo
    assert _total_actas(db) == 0
    assert db.get_valor_consecutivo(SERIE_ACTA_INTERNA) == 0


def test_firma_en_blanco_cuenta_como_ausente(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    with pytest.raises(ErrorValidacion) as exc:
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo], firma_entrega="   "))
    assert exc.value.codigo == "missing-signature"


def test_maximo_de_equipos_por_acta(db, usuarios, datos_acta):
    datos = datos_acta([], equipo_ids=list(range(1, 202)))
    with pytest.raises(ErrorValidacion) as exc:
        crear_acta_interna(db, usuarios['ingeniero'], datos)
    assert exc.value.codigo == "too-many-equipment"


def test_cargo_recibe_requerido(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    with pytest.raises(ErrorValidacion) as exc:
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo], cargo_recibe=" "))
    assert exc.value.codigo == "missing-field"


def test_equipo_no_elegible_aborta_toda_el_acta(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    bueno = crear_equipo(ingeniero)
    en_mantenimiento = crear_equipo(ingeniero, estado=ESTADO_MANTENIMIENTO)

    with pytest.raises(ErrorElegibilidad) as exc:
        crear_acta_interna(db, ingeniero, datos_acta([bueno, en_mantenimiento]))

    assert exc.value.codigo == "ineligible-equipment"
    assert en_mantenimiento['codigo_inventario'] in exc.value.mensaje
    assert db.get_equipo_by_id(bueno['id'])['acta_pendiente_id'] is None
    assert _total_actas(db) == 0
    assert db.get_valor_consecutivo(SERIE_ACTA_INTERNA) == 0


def test_fallo_al_reservar_deshace_consecutivo_y_acta(db, usuarios, crear_equipo, datos_acta, monkeypatch):
    ingeniero = usuarios['ingeniero']
    e1, e2 = crear_equipo(ingeniero), crear_equipo(ingeniero)
    reservar_original = db.reservar_equipo_para_acta

    def reservar_solo_el_primero(equipo_id, *args):
        if equipo_id == e2['id']:
            return False
        return reservar_original(equipo_id, *args)

    monkeypatch.setattr(db, "reservar_equipo_para_acta", reservar_solo_el_primero)

    with pytest.raises(ErrorConflicto) as exc:
        crear_acta_interna(db, ingeniero, datos_acta([e1, e2]))

    assert exc.value.codigo == "conflict-retry"
    assert db.get_equipo_by_id(e1['id'])['acta_pendiente_id'] is None
    assert _total_actas(db) == 0
    assert db.get_valor_consecutivo(SERIE_ACTA_INTERNA) == 0
    assert db.get_log_sistema_por_accion("Creación Acta Interna") == []


def test_equipo_ya_reservado_pide_reintentar(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    equipo = crear_equipo(ingeniero)
    crear_acta_interna(db, ingeniero, datos_acta([equipo]))

    with pytest.raises(ErrorConflicto) as exc:
        crear_acta_interna(db, ingeniero, datos_acta([equipo]))
    assert exc.value.codigo == "conflict-retry"
    assert exc.value.reintentable
    assert _total_actas(db) == 1


def test_ingeniero_no_entrega_equipos_de_otro_custodio(db, usuarios, crear_equipo, datos_acta):
    ajeno = crear_equipo(usuarios['ingeniero2'])
    with pytest.raises(ErrorElegibilidad):
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([ajeno]))


def test_equipo_sin_custodio_es_elegible(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(None)
    resultado = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo]))
    assert db.get_equipo_by_id(equipo['id'])['custodio_id'] == usuarios['ingeniero']['id']
    assert resultado['consecutivo'] == 1


def test_equipo_inexistente(db, usuarios, datos_acta):
    with pytest.raises(ErrorNoEncontrado):
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([], equipo_ids=[999]))


def test_referencias_por_codigo_y_sin_duplicados(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    equipo = crear_equipo(ingeniero, codigo="MBG-777")
    datos = datos_acta([], equipo_ids=["mbg-777", equipo['id'], str(equipo['id']), ""])

    resultado = crear_acta_interna(db, ingeniero, datos)

    items = db.get_acta_interna_by_id(resultado['id'])['items']
    assert [i['codigo_inventario'] for i in items] == ["MBG-777"]


def test_codigo_numerico_prevalece_sobre_el_id(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    primero = crear_equipo(ingeniero)
    crear_equipo(ingeniero)
    numerico = crear_equipo(ingeniero, codigo="0001")
    assert primero['id'] == 1 and numerico['id'] != 1

    resultado = crear_acta_interna(db, ingeniero, datos_acta([], equipo_ids=["0001"]))

    items = db.get_acta_interna_by_id(resultado['id'])['items']
    assert [i['codigo_inventario'] for i in items] == ["0001"]
    assert db.get_equipo_by_id(numerico['id'])['acta_pendiente_id'] == resultado['id']
    assert db.get_equipo_by_id(primero['id'])['acta_pendiente_id'] is None


def test_texto_numerico_sin_codigo_se_busca_como_id(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    resultado = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([], equipo_ids=[str(equipo['id'])]))
    assert db.get_equipo_by_id(equipo['id'])['acta_pendiente_id'] == resultado['id']


@pytest.mark.parametrize("referencia", ["²", "١٢", "9999"])
def test_referencia_con_digitos_no_ascii_no_existe(db, usuarios, crear_equipo, datos_acta, referencia):
    crear_equipo(usuarios['ingeniero'])
    with pytest.raises(ErrorNoEncontrado):
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([], equipo_ids=[referencia]))
    assert _total_actas(db) == 0


def test_valores_por_defecto_de_area_y_fecha(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    datos = datos_acta([equipo], fecha="no es fecha")
    datos.pop('area', None)

    acta = db.get_acta_interna_by_id(crear_acta_interna(db, usuarios['ingeniero'], datos)['id'])

    assert acta['area'] == AREA_POR_DEFECTO
    assert datetime.fromisoformat(acta['fecha']).date() == datetime.now().date()


def test_fecha_como_objeto_date(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    datos = datos_acta([equipo], fecha=date(2026, 10, 17))
    acta = db.get_acta_interna_by_id(crear_acta_interna(db, usuarios['ingeniero'], datos)['id'])
    assert acta['fecha'] == "2026-10-17T00:00:00"


def test_receptor_por_email(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    datos = datos_acta([equipo], recibe_id=None, recibe_email="AUXILIAR2@hospital.test")
    acta = db.get_acta_interna_by_id(crear_acta_interna(db, usuarios['ingeniero'], datos)['id'])
    assert acta['recibe_id'] == usuarios['auxiliar2']['id']
    assert acta['recibe_email'] == "auxiliar2@hospital.test"


def test_email_guardado_es_el_del_receptor_resuelto(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    datos = datos_acta([equipo], recibe_id=usuarios['auxiliar']['id'], recibe_email="auxiliar2@hospital.test")
    acta = db.get_acta_interna_by_id(crear_acta_interna(db, usuarios['ingeniero'], datos)['id'])
    assert acta['recibe_id'] == usuarios['auxiliar']['id']
    assert acta['recibe_email'] == "auxiliar@hospital.test"


@pytest.mark.parametrize("receptor", ["ingeniero2", "visitador", "inactiva", "inexistente"])
def test_receptor_desconocido(db, usuarios, crear_equipo, datos_acta, receptor):
    equipo = crear_equipo(usuarios['ingeniero'])
    if receptor == "inactiva":
        db.update_user_status(usuarios['auxiliar2']['id'], False)
        recibe_id = usuarios['auxiliar2']['id']
    elif receptor == "inexistente":
        recibe_id = 9999
    else:
        recibe_id = usuarios[receptor]['id']

    with pytest.raises(ErrorElegibilidad) as exc:
        crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo], recibe_id=recibe_id))

    assert exc.value.codigo == "unknown-receiver"
    assert db.get_equipo_by_id(equipo['id'])['acta_pendiente_id'] is None


@pytest.mark.parametrize("rol", ["auxiliar", "gerencia", "visitador", "admin"])
def test_solo_ingeniero_crea_actas(db, usuarios, crear_equipo, datos_acta, rol):
    equipo = crear_equipo(None)
    with pytest.raises(ErrorAutorizacion) as exc:
        crear_acta_interna(db, usuarios[rol], datos_acta([equipo]))
    assert exc.value.codigo == "permission-denied"


def test_cuenta_desactivada_despues_del_login(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    equipo = crear_equipo(ingeniero)
    db.update_user_status(ingeniero['id'], False)

    with pytest.raises(ErrorAutorizacion):
        crear_acta_interna(db, ingeniero, datos_acta([equipo]))
    assert _total_actas(db) == 0


def test_items_congelados_no_cambian_con_el_equipo(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    equipo = crear_equipo(ingeniero, nombre="Bomba De Infusión")
    acta_id = crear_acta_interna(db, ingeniero, datos_acta([equipo]))['id']

    db.update_equipo_descripcion(equipo['id'], {'nombre': "Nombre Corregido", 'marca': "Otra"})

    item = db.get_acta_interna_by_id(acta_id)['items'][0]
    assert item['nombre'] == "Bomba De Infusión"
    assert item['marca'] == "Mindray"
    assert db.get_equipo_by_id(equipo['id'])['nombre'] == "Nombre Corregido"


# --- Aceptación ---

def test_aceptar_libera_equipos_y_cambia_custodia(db, usuarios, crear_equipo, datos_acta):
    ingeniero, auxiliar = usuarios['ingeniero'], usuarios['auxiliar']
    e1, e2 = crear_equipo(ingeniero), crear_equipo(ingeniero)
    acta_id = crear_acta_interna(db, ingeniero, datos_acta([e1, e2]))['id']

    acta = aceptar_acta_interna(db, auxiliar, acta_id, FIRMA_RECIBE)

    assert acta['estado'] == ACTA_ACEPTADA
    assert acta['firma_recibe'] == FIRMA_RECIBE
    assert acta['firma_entrega'] == FIRMA_PNG
    assert acta['fecha_aceptacion']
    for equipo in (e1, e2):
        actual = db.get_equipo_by_id(equipo['id'])
        assert actual['acta_pendiente_id'] is None
        assert actual['acta_pendiente_recibe_id'] is None
        assert actual['custodio_id'] == auxiliar['id']
        assert actual['disponible_para_entrega'] == 1
    assert db.count_actas_enviadas_por_equipo(e1['id']) == 0
    assert len(db.get_log_sistema_por_accion("Aceptación Acta Interna")) == 1


def test_segunda_aceptacion_falla_sin_cambios(db, usuarios, crear_equipo, datos_acta):
    ingeniero, auxiliar = usuarios['ingeniero'], usuarios['auxiliar']
    equipo = crear_equipo(ingeniero)
    acta_id = crear_acta_interna(db, ingeniero, datos_acta([equipo]))['id']
    aceptar_acta_interna(db, auxiliar, acta_id, FIRMA_RECIBE)
    antes = db.get_acta_interna_by_id(acta_id)

    with pytest.raises(ErrorConflicto) as exc:
        aceptar_acta_interna(db, auxiliar, acta_id, b"otra firma")

    assert exc.value.codigo == "wrong-state"
    assert not exc.value.reintentable
    assert db.get_acta_interna_by_id(acta_id) == antes


def test_aceptar_sin_firma(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    acta_id = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo]))['id']

    with pytest.raises(ErrorValidacion) as exc:
        aceptar_acta_interna(db, usuarios['auxiliar'], acta_id, b"")

    assert exc.value.codigo == "missing-signature"
    assert db.get_acta_interna_by_id(acta_id)['estado'] == ACTA_ENVIADA
    assert db.get_equipo_by_id(equipo['id'])['acta_pendiente_id'] == acta_id


def test_aceptar_acta_inexistente(db, usuarios):
    with pytest.raises(ErrorNoEncontrado):
        aceptar_acta_interna(db, usuarios['auxiliar'], 999, FIRMA_RECIBE)


def test_aceptar_sin_identificador(db, usuarios):
    with pytest.raises(ErrorValidacion):
        aceptar_acta_interna(db, usuarios['auxiliar'], None, FIRMA_RECIBE)


def test_solo_la_receptora_asignada_acepta(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    acta_id = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo]))['id']

    with pytest.raises(ErrorAutorizacion):
        aceptar_acta_interna(db, usuarios['auxiliar2'], acta_id, FIRMA_RECIBE)
    with pytest.raises(ErrorAutorizacion):
        aceptar_acta_interna(db, usuarios['ingeniero'], acta_id, FIRMA_RECIBE)

    assert db.get_acta_interna_by_id(acta_id)['estado'] == ACTA_ENVIADA
    assert db.get_firma_acta(acta_id, 'recibe') is None


def test_firma_guarda_huella(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    acta_id = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo], firma_entrega="data:image/png;base64,AAAA"))['id']
    firma = db.get_firma_acta(acta_id, 'entrega')
    assert firma['contenido'] == b"data:image/png;base64,AAAA"
    assert len(firma['huella']) == 64


# --- Concurrencia ---

def test_dos_actas_compiten_por_el_mismo_equipo(db, db_path, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    equipo = crear_equipo(ingeniero)
    datos = datos_acta([equipo])
    barrera = threading.Barrier(2)
    exitos, errores = [], []

    def intentar():
        conexion = DatabaseManager(db_path)
        try:
            barrera.wait()
            exitos.append(crear_acta_interna(conexion, ingeniero, dict(datos)))
        except ErrorConflicto as e:
            errores.append(e)
        finally:
            conexion.close()

    hilos = [threading.Thread(target=intentar) for _ in range(2)]
    for hilo in hilos:
        hilo.start()
    for hilo in hilos:
        hilo.join(timeout=30)

    assert len(exitos) == 1
    assert len(errores) == 1
    assert errores[0].codigo == "conflict-retry"
    assert db.get_equipo_by_id(equipo['id'])['acta_pendiente_id'] == exitos[0]['id']
    assert _total_actas(db) == 1
    assert db.get_valor_consecutivo(SERIE_ACTA_INTERNA) == 1


# --- Reasignación de receptor ---

def test_reasignar_receptor_de_acta_pendiente(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    acta_id = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo]))['id']
    db.update_user_status(usuarios['auxiliar']['id'], False)

    acta = reasignar_receptor_acta(db, usuarios['admin'], acta_id, recibe_id=usuarios['auxiliar2']['id'])

    assert acta['recibe_id'] == usuarios['auxiliar2']['id']
    assert acta['recibe_nombre'] == "Alba Auxiliar"
    assert db.get_equipo_by_id(equipo['id'])['acta_pendiente_recibe_id'] == usuarios['auxiliar2']['id']
    aceptada = aceptar_acta_interna(db, usuarios['auxiliar2'], acta_id, FIRMA_RECIBE)
    assert aceptada['estado'] == ACTA_ACEPTADA
    assert len(db.get_log_sistema_por_accion("Reasignación Acta Interna")) == 1


def test_reasignar_acta_aceptada_falla(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    acta_id = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo]))['id']
    aceptar_acta_interna(db, usuarios['auxiliar'], acta_id, FIRMA_RECIBE)

    with pytest.raises(ErrorConflicto) as exc:
        reasignar_receptor_acta(db, usuarios['admin'], acta_id, recibe_id=usuarios['auxiliar2']['id'])
    assert exc.value.codigo == "wrong-state"


def test_solo_administrador_reasigna(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    acta_id = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo]))['id']
    with pytest.raises(ErrorAutorizacion):
        reasignar_receptor_acta(db, usuarios['ingeniero'], acta_id, recibe_id=usuarios['auxiliar2']['id'])


# --- Consultas ---

def test_listar_receptores_elegibles(db, usuarios):
    db.update_user_status(usuarios['auxiliar2']['id'], False)
    receptores = listar_receptores_elegibles(db, usuarios['ingeniero'])
    assert receptores == [{'id': usuarios['auxiliar']['id'], 'nombre': "Ana Auxiliar", 'email': "auxiliar@hospital.test"}]


def test_listar_receptores_ordenados_por_nombre(db, usuarios):
    nombres = [r['nombre'] for r in listar_receptores_elegibles(db, usuarios['admin'])]
    assert nombres == ["Alba Auxiliar", "Ana Auxiliar"]


def test_auxiliar_no_lista_receptores(db, usuarios):
    with pytest.raises(ErrorAutorizacion):
        listar_receptores_elegibles(db, usuarios['auxiliar'])


def test_listar_equipos_elegibles(db, usuarios, crear_equipo, datos_acta):
    ingeniero = usuarios['ingeniero']
    propio, reservado = crear_equipo(ingeniero), crear_equipo(ingeniero)
    crear_equipo(usuarios['ingeniero2'])
    crear_equipo(ingeniero, estado=ESTADO_MANTENIMIENTO)
    crear_acta_interna(db, ingeniero, datos_acta([reservado]))

    assert [e['id'] for e in listar_equipos_elegibles(db, ingeniero)] == [propio['id']]


def test_visibilidad_de_actas_por_rol(db, usuarios, crear_equipo, datos_acta):
    equipo = crear_equipo(usuarios['ingeniero'])
    acta_id = crear_acta_interna(db, usuarios['ingeniero'], datos_acta([equipo]))['id']

    def visibles(clave):
        return [a['id'] for a in listar_actas_visibles(db, usuarios[clave])]

    assert visibles('ingeniero') == [acta_id]
    assert visibles('auxiliar') == [acta_id]
    assert visibles('gerencia') == [acta_id]
    assert visibles('admin') == [acta_id]
    assert visibles('ingeniero2') == []
    assert visibles('auxiliar2') == []
    assert visibles('visitador') == []

    assert obtener_acta_interna(db, usuarios['auxiliar'], acta_id)['id'] == acta_id
    with pytest.raises(ErrorAutorizacion):
        obtener_acta_interna(db, usuarios['auxiliar2'], acta_id)
    with pytest.raises(ErrorNoEncontrado):
        obtener_acta_interna(db, usuarios['admin'], 12345)
