# inventario_biomedico/modules/reportes.py
import tempfile
import webbrowser
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter
from colorama import Fore, Style

from .. import ui
from ..actas_internas import listar_actas_visibles
from ..auth import tiene_permiso
from ..database import DatabaseManager

ENCABEZADOS_ACTAS = [
    "N° ACTA", "FECHA", "ESTADO", "CIUDAD", "SEDE", "ÁREA", "ENTREGA", "RECIBE", "CARGO RECIBE",
    "CÓDIGO INVENTARIO", "NÚMERO DE SERIE", "NOMBRE", "MARCA", "MODELO", "OBSERVACIONES"
]

COLORES_ESTADO = {"Enviada": "FFEB9C", "Aceptada": "C6EFCE"}


def generar_excel_actas(actas: List[Dict], ruta: Optional[str] = None) -> str:
    """Una fila por equipo de cada acta. Devuelve la ruta del archivo generado."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Actas Internas"

    header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
    header_font = Font(color="FFFFFF", bold=True)
    border = Border(left=Side(style='thin'), right=Side(style='thin'), top=Side(style='thin'), bottom=Side(style='thin'))

    anchos = [10, 22, 12, 18, 18, 18, 30, 30, 25, 20, 20, 30, 18, 18, 60]
    for col_num, (encabezado, ancho) in enumerate(zip(ENCABEZADOS_ACTAS, anchos), 1):
        col_letra = get_column_letter(col_num)
        ws.column_dimensions[col_letra].width = ancho
        celda = ws[f"{col_letra}1"]
        celda.value = encabezado
        celda.fill = header_fill
        celda.font = header_font
        celda.alignment = Alignment(horizontal='center')
        celda.border = border

    row_num = 2
    for acta in actas:
        for item in acta['items']:
            data_row = [
                acta['consecutivo'], acta['fecha'], acta['estado'], acta['ciudad'], acta['sede'], acta['area'],
                acta['entrega_nombre'], acta['recibe_nombre'], acta['cargo_recibe'],
                item['codigo_inventario'], item['numero_serie'], item['nombre'], item['marca'], item['modelo'],
                acta['observaciones']
            ]
            for col_num, cell_value in enumerate(data_row, 1):
                cell = ws.cell(row=row_num, column=col_num, value=cell_value)
                cell.border = border
            color_hex = COLORES_ESTADO.get(acta['estado'])
            if color_hex:
                ws.cell(row=row_num, column=3).fill = PatternFill(start_color=color_hex, end_color=color_hex, fill_type="solid")
            row_num += 1

    ws.freeze_panes = "A2"

    if ruta is None:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".xlsx") as tmp:
            ruta = tmp.name
    wb.save(ruta)
    return ruta


def exportar_actas_excel(db: DatabaseManager, usuario_logueado: dict):
    """Genera el Excel con las actas que el usuario puede ver y lo abre."""
    if not tiene_permiso(usuario_logueado, "generar_reportes"):
        print(Fore.RED + "\n❌ Su rol no permite generar reportes."); ui.pausar_pantalla(); return
    try:
        actas = listar_actas_visibles(db, usuario_logueado)
        if not actas:
            print(Fore.YELLOW + "\nNo hay actas internas para generar un reporte.")
            return
        ruta_temporal = generar_excel_actas(actas)
        db.registrar_movimiento_sistema("Reporte Actas Internas", f"Generado reporte con {len(actas)} actas", usuario_logueado['username'])
        print(Fore.GREEN + "\n✅ Abriendo el reporte de actas internas en Excel..." + Style.RESET_ALL)
        webbrowser.open(ruta_temporal)
    except OSError as e:
        print(Fore.RED + f"\n❌ Error al generar el reporte Excel: {str(e)}" + Style.RESET_ALL)
    finally:
        ui.pausar_pantalla()
